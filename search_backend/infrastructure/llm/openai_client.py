"""OpenAI API client — implements the ChatProvider interface.

Talks to any OpenAI-compatible ``/chat/completions`` endpoint using httpx,
for both non-streaming and SSE streaming chat completions.
"""

import json
import logging
from collections.abc import AsyncIterator

import httpx

from search_backend.application.interfaces.chat_provider import ChatProvider
from search_backend.domain.entities import ChatCompletionResult, ChatMessage, TokenUsage
from search_backend.domain.exceptions import ChatProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class OpenAIChatClient(ChatProvider):
    """Infrastructure adapter — connects to the OpenAI API.

    Uses an injected, shared httpx.AsyncClient when one is given (connection
    pooling for the app's lifetime), otherwise opens one per call.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return "openai"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _build_payload(
        messages: list[ChatMessage],
        model: str,
        *,
        stream: bool = False,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict:
        payload: dict = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if stream:
            payload["stream"] = True
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        """Send a non-streaming chat completion."""
        payload = self._build_payload(
            messages, model, temperature=temperature, max_tokens=max_tokens
        )
        url = f"{self._base_url}/chat/completions"

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            response = await client.post(url, headers=self._get_headers(), json=payload)

            if response.status_code != 200:
                self._raise_provider_error(response.status_code, response.content)

            return self._parse_completion_response(response.json())

        except httpx.HTTPError as e:
            logger.error("OpenAI request failed: %s", e)
            raise ChatProviderError(
                provider=self.provider_name, status_code=502, message=str(e) or type(e).__name__
            ) from e
        finally:
            if should_close:
                await client.aclose()

    async def stream(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Send a streaming chat completion.

        Yields SSE-formatted 'data: {...}' lines up to and including
        'data: [DONE]'. Comment and blank lines are dropped.
        """
        payload = self._build_payload(
            messages, model, stream=True, temperature=temperature, max_tokens=max_tokens
        )
        url = f"{self._base_url}/chat/completions"

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            async with client.stream(
                "POST", url, headers=self._get_headers(), json=payload
            ) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    self._raise_provider_error(response.status_code, body)

                async for line in response.aiter_lines():
                    if not line or line.startswith(":"):
                        continue

                    if line.strip() == "data: [DONE]":
                        yield line
                        break

                    if line.startswith("data: "):
                        yield line

        except httpx.HTTPError as e:
            logger.error("OpenAI stream failed: %s", e)
            raise ChatProviderError(
                provider=self.provider_name, status_code=502, message=str(e) or type(e).__name__
            ) from e
        finally:
            if should_close:
                await client.aclose()

    def _parse_completion_response(self, data: dict) -> ChatCompletionResult:
        """Parse the OpenAI JSON response into a domain entity."""
        if "error" in data:
            error = data["error"] or {}
            raise ChatProviderError(
                provider=self.provider_name,
                status_code=_int_or(error.get("code"), 500),
                message=error.get("message", "Unknown error"),
            )

        choices = data.get("choices") or []
        if not choices:
            raise ChatProviderError(
                provider=self.provider_name,
                status_code=502,
                message="No choices in response",
            )

        choice = choices[0]
        message = choice.get("message") or {}
        usage_data = data.get("usage") or {}

        return ChatCompletionResult(
            model=data.get("model", ""),
            content=message.get("content", "") or "",
            finish_reason=choice.get("finish_reason", "stop") or "stop",
            usage=TokenUsage(
                prompt_tokens=usage_data.get("prompt_tokens", 0),
                completion_tokens=usage_data.get("completion_tokens", 0),
                total_tokens=usage_data.get("total_tokens", 0),
            ),
            provider=self.provider_name,
            response_id=data.get("id", ""),
        )

    def _raise_provider_error(self, status_code: int, body: bytes) -> None:
        """Raise ChatProviderError from a non-200 response body."""
        try:
            data = json.loads(body)
            error = data.get("error") or {}
            message = error.get("message") or body.decode(errors="replace")
        except (ValueError, AttributeError):
            message = body.decode(errors="replace")

        raise ChatProviderError(
            provider=self.provider_name,
            status_code=status_code,
            message=message,
        )


def _int_or(value: object, default: int) -> int:
    """OpenAI error codes are sometimes strings like 'invalid_api_key'."""
    return value if isinstance(value, int) else default
