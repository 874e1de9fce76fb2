"""Single choke point for model calls — timing and usage logging."""

import logging
import time

from search_backend.application.interfaces.chat_provider import ChatProvider
from search_backend.application.services.llm_usage_logger import LLMUsageLogger
from search_backend.domain.entities import ChatCompletionResult, ChatMessage

logger = logging.getLogger(__name__)


class ModelInvoker:
    """Wraps a ChatProvider so every call is timed and recorded per feature.

    Errors are logged and re-raised unchanged; deciding whether a failure
    degrades or fails the request is the caller's business.
    """

    def __init__(self, provider: ChatProvider, usage_logger: LLMUsageLogger | None = None):
        self._provider = provider
        self._usage_logger = usage_logger or LLMUsageLogger()

    @property
    def provider(self) -> ChatProvider:
        return self._provider

    @property
    def usage_logger(self) -> LLMUsageLogger:
        return self._usage_logger

    async def complete(
        self,
        feature: str,
        *,
        system: str | None,
        user: str,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        """Run one system+user completion for ``feature``."""
        messages = []
        if system:
            messages.append(ChatMessage(role="system", content=system))
        messages.append(ChatMessage(role="user", content=user))
        return await self.complete_messages(
            feature,
            messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    async def complete_messages(
        self,
        feature: str,
        messages: list[ChatMessage],
        *,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        start = time.monotonic()
        try:
            result = await self._provider.complete(
                messages=messages,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            self._usage_logger.log_error(
                model=model,
                provider=self._provider.provider_name,
                feature=feature,
                duration_ms=int((time.monotonic() - start) * 1000),
                error=e,
            )
            raise

        self._usage_logger.log_request(
            model=result.model or model,
            provider=result.provider or self._provider.provider_name,
            feature=feature,
            usage=result.usage,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return result
