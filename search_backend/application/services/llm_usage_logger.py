"""Centralized LLM usage logger — single entry point for tracking all model requests.

Logs every model call (keywords, classification, answer, aggregation,
follow-ups, forum replies) with token usage and duration, and keeps
per-feature running totals in process memory for the metrics endpoint.
"""

import logging
from dataclasses import asdict, dataclass

from search_backend.domain.entities import TokenUsage

logger = logging.getLogger(__name__)


@dataclass
class FeatureUsage:
    """Running totals for one feature since process start."""

    requests: int = 0
    errors: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    total_duration_ms: int = 0

    @property
    def avg_duration_ms(self) -> float:
        return self.total_duration_ms / self.requests if self.requests else 0.0


class LLMUsageLogger:
    """Tracks LLM usage across all features.

    Usage:
        usage_logger = LLMUsageLogger()
        usage_logger.log_request(
            model="gpt-4o-mini",
            provider="openai",
            feature="classification",
            usage=result.usage,
            duration_ms=42,
        )
    """

    def __init__(self) -> None:
        self._totals: dict[str, FeatureUsage] = {}

    def log_request(
        self,
        *,
        model: str,
        provider: str,
        feature: str,
        usage: TokenUsage,
        duration_ms: int,
        status: str = "success",
        error_message: str | None = None,
    ) -> FeatureUsage:
        """Record and log a model request.

        Args:
            model: Model identifier (e.g. "gpt-4.1").
            provider: Provider name (e.g. "openai").
            feature: Which subsystem triggered the call
                     ("keywords", "classification", "answer", ...).
            usage: Token usage from the completion result.
            duration_ms: Wall-clock time of the request in milliseconds.
            status: "success" or "error".
            error_message: Error details if status == "error".

        Returns:
            The updated running totals for ``feature``.
        """
        totals = self._totals.setdefault(feature, FeatureUsage())
        totals.requests += 1
        totals.prompt_tokens += usage.prompt_tokens
        totals.completion_tokens += usage.completion_tokens
        totals.total_tokens += usage.total_tokens
        totals.total_duration_ms += duration_ms

        if status == "error":
            totals.errors += 1
            logger.warning(
                "LLM [%s] model=%s provider=%s failed after %dms: %s",
                feature,
                model,
                provider,
                duration_ms,
                error_message,
            )
        else:
            logger.info(
                "LLM [%s] model=%s tokens=%d %dms",
                feature,
                model,
                usage.total_tokens,
                duration_ms,
            )
        return totals

    def log_error(
        self,
        *,
        model: str,
        provider: str,
        feature: str,
        duration_ms: int,
        error: Exception,
    ) -> FeatureUsage:
        """Convenience method for logging failed model requests."""
        return self.log_request(
            model=model,
            provider=provider,
            feature=feature,
            usage=TokenUsage(),
            duration_ms=duration_ms,
            status="error",
            error_message=str(error),
        )

    def snapshot(self) -> dict[str, dict]:
        """Per-feature totals as plain dicts."""
        return {
            feature: {**asdict(totals), "avg_duration_ms": round(totals.avg_duration_ms, 1)}
            for feature, totals in self._totals.items()
        }
