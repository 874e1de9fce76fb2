"""reCAPTCHA v3 bot-score verification against Google's siteverify API."""

import logging
from dataclasses import dataclass

import httpx

from search_backend.domain.exceptions import AccessDeniedError

logger = logging.getLogger(__name__)

RECAPTCHA_HEADER = "x-recaptcha-token"


@dataclass(frozen=True)
class RecaptchaAssessment:
    score: float | None
    action: str | None
    hostname: str | None
    challenge_ts: str | None


class RecaptchaVerifier:
    """Checks a client token, its score and its action.

    Disabled (every request passes) when no secret key is configured.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        score_threshold: float = 0.5,
        allowed_actions: list[str] | None = None,
        verify_url: str = "https://www.google.com/recaptcha/api/siteverify",
        http_client: httpx.AsyncClient | None = None,
    ):
        self._secret_key = secret_key
        self._threshold = score_threshold
        self._actions = list(allowed_actions or [])
        self._verify_url = verify_url
        self._http_client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self._secret_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=10.0)

    async def verify(self, token: str | None) -> RecaptchaAssessment | None:
        """Verify ``token``; returns None when verification is disabled.

        Raises:
            AccessDeniedError: 400 without a token, 403 for a failed check,
                low score or unexpected action, 500 if Google is unreachable.
        """
        if not self.enabled:
            return None
        if not token:
            raise AccessDeniedError(400, "reCAPTCHA token is required")

        client = await self._get_client()
        should_close = self._http_client is None
        try:
            response = await client.post(
                self._verify_url,
                data={"secret": self._secret_key, "response": token},
            )
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("reCAPTCHA verification error: %s", e)
            raise AccessDeniedError(500, "Failed to verify reCAPTCHA") from e
        finally:
            if should_close:
                await client.aclose()

        if not result.get("success"):
            logger.warning("reCAPTCHA verification failed: %s", result.get("error-codes"))
            raise AccessDeniedError(403, "reCAPTCHA verification failed")

        score = result.get("score")
        if score is not None and score < self._threshold:
            logger.warning("reCAPTCHA score too low: %s", score)
            raise AccessDeniedError(403, "Request blocked due to suspicious activity")

        action = result.get("action")
        if action and self._actions and action not in self._actions:
            logger.warning("Invalid reCAPTCHA action: %s", action)
            raise AccessDeniedError(403, "Invalid reCAPTCHA action")

        return RecaptchaAssessment(
            score=score,
            action=action,
            hostname=result.get("hostname"),
            challenge_ts=result.get("challenge_ts"),
        )
