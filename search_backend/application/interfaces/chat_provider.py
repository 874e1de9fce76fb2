"""Abstract chat provider interface — port for model provider adapters.

Each provider (OpenAI, any OpenAI-compatible gateway, test fakes)
implements this interface.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from search_backend.domain.entities import ChatMessage, ChatCompletionResult


class ChatProvider(ABC):
    """Port — defines what the application layer needs from any chat provider."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider (e.g. 'openai')."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        """Send a non-streaming chat completion request.

        Args:
            messages: The conversation history.
            model: The model identifier (e.g. 'gpt-4o-mini').
            temperature: Sampling temperature (0.0–2.0).
            max_tokens: Maximum tokens in the response.

        Returns:
            A ChatCompletionResult with content and usage.

        Raises:
            ChatProviderError: If the provider returns an error.
        """
        ...

    @abstractmethod
    async def stream(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Send a streaming chat completion request.

        Yields SSE data lines ('data: {...}'), ending with 'data: [DONE]'.

        Raises:
            ChatProviderError: If the provider returns an error.
        """
        ...
