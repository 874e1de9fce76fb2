"""Model provider infrastructure package."""

from .openai_client import OpenAIChatClient

__all__ = ["OpenAIChatClient"]
