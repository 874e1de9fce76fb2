"""Multi-source aggregation — merges documentation, issue, blog and changelog
results, orders them by source priority and asks the model for one fused answer.

The weights, the resolved-issue bonus and the confidence coefficients are
ad hoc constants; they live in AggregationConfig so deployments can tune
them without touching the ordering logic.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any

from search_backend.application.interfaces.document_searcher import (
    DocumentSearcher,
    NullSearcher,
)
from search_backend.application.services.context_builder import build_multi_source_context
from search_backend.application.services.model_invoker import ModelInvoker
from search_backend.application.services.prompt_templates import (
    aggregation_system_prompt,
    aggregation_user_prompt,
)
from search_backend.domain.entities import (
    AggregatedResult,
    Document,
    MultiSourceResult,
    SourceType,
    TokenUsage,
)

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 50
FALLBACK_EXCERPT_CHARS = 200


@dataclass(frozen=True)
class AggregationConfig:
    """Tunable constants for ordering and confidence scoring."""

    weights: dict[SourceType, float] = field(
        default_factory=lambda: {
            SourceType.DOCUMENTATION: 0.5,
            SourceType.GITHUB: 0.3,
            SourceType.BLOG: 0.15,
            SourceType.CHANGELOG: 0.05,
        }
    )
    resolved_bonus: float = 0.1
    per_source_points: int = 10
    per_resolved_issue_points: int = 15
    per_documentation_points: int = 20
    fallback_source_count: int = 3
    results_per_source: int = 5

    def weight_for(self, source: SourceType) -> float:
        return self.weights.get(source, 0.0)

    def with_overrides(self, overrides: dict[str, Any] | None) -> "AggregationConfig":
        """Apply per-request overrides (``weights`` keyed by source name,
        ``resolvedBonus``, ``maxResultsPerSource``); unknown keys are ignored."""
        if not overrides:
            return self
        changes: dict[str, Any] = {}
        raw_weights = overrides.get("weights")
        if isinstance(raw_weights, dict):
            weights = dict(self.weights)
            for name, value in raw_weights.items():
                try:
                    weights[SourceType(name)] = min(1.0, max(0.0, float(value)))
                except (ValueError, TypeError):
                    logger.debug("Ignoring weight override %r=%r", name, value)
            changes["weights"] = weights
        bonus = overrides.get("resolvedBonus", overrides.get("resolved_bonus"))
        if isinstance(bonus, (int, float)):
            changes["resolved_bonus"] = float(bonus)
        per_source = overrides.get("maxResultsPerSource", overrides.get("max_results_per_source"))
        if isinstance(per_source, int) and per_source > 0:
            changes["results_per_source"] = per_source
        return replace(self, **changes)


@dataclass
class SourceResults:
    """Raw per-source lists before merging."""

    documentation: list[Document] = field(default_factory=list)
    github: list[Document] = field(default_factory=list)
    blog: list[Document] = field(default_factory=list)
    changelog: list[Document] = field(default_factory=list)


def sort_key(result: MultiSourceResult, resolved_bonus: float = 0.1) -> float:
    """Source weight plus a flat bonus for resolved issues."""
    return result.weight + resolved_bonus if result.is_resolved else result.weight


def merge_sources(
    results: SourceResults, config: AggregationConfig
) -> list[MultiSourceResult]:
    """Tag every document with its source and weight, then sort.

    Descending by sort key; Python's sort is stable so ties keep the
    documentation → github → blog → changelog input order.
    """
    merged: list[MultiSourceResult] = []
    for source, documents in (
        (SourceType.DOCUMENTATION, results.documentation),
        (SourceType.GITHUB, results.github),
        (SourceType.BLOG, results.blog),
        (SourceType.CHANGELOG, results.changelog),
    ):
        weight = config.weight_for(source)
        merged.extend(
            MultiSourceResult.from_document(doc, source, weight=weight) for doc in documents
        )
    merged.sort(key=lambda r: sort_key(r, config.resolved_bonus), reverse=True)
    return merged


def confidence_score(sources: list[MultiSourceResult], config: AggregationConfig) -> int:
    """Heuristic 0–100 score from how many and what kind of sources exist."""
    resolved = sum(1 for s in sources if s.source is SourceType.GITHUB and s.is_resolved)
    docs = sum(1 for s in sources if s.source is SourceType.DOCUMENTATION)
    raw = (
        config.per_source_points * len(sources)
        + config.per_resolved_issue_points * resolved
        + config.per_documentation_points * docs
    )
    return min(100, raw)


class MultiSourceAggregator:
    """Fuses results from several source types into one answer."""

    def __init__(
        self,
        invoker: ModelInvoker,
        *,
        model: str,
        config: AggregationConfig | None = None,
        github_searcher: DocumentSearcher | None = None,
        blog_searcher: DocumentSearcher | None = None,
        changelog_searcher: DocumentSearcher | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ):
        self._invoker = invoker
        self._model = model
        self._config = config or AggregationConfig()
        self._github = github_searcher or NullSearcher("github")
        self._blog = blog_searcher or NullSearcher("blog")
        self._changelog = changelog_searcher or NullSearcher("changelog")
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def config(self) -> AggregationConfig:
        return self._config

    async def search_all_sources(
        self, query: str, *, limit: int | None = None
    ) -> tuple[list[Document], list[Document], list[Document]]:
        """Query issue tracker, blog and changelog concurrently.

        Waits for all three; a failing source contributes an empty list.
        """
        limit = limit or self._config.results_per_source
        github, blog, changelog = await asyncio.gather(
            self._safe_search(self._github, query, limit),
            self._safe_search(self._blog, query, limit),
            self._safe_search(self._changelog, query, limit),
        )
        return github, blog, changelog

    @staticmethod
    async def _safe_search(searcher: DocumentSearcher, query: str, limit: int) -> list[Document]:
        if not searcher.enabled:
            return []
        try:
            return await searcher.search(query, limit=limit)
        except Exception as e:
            logger.warning("Source '%s' search failed, continuing without it: %s", searcher.source_name, e)
            return []

    async def aggregate(
        self,
        query: str,
        doc_results: list[Document],
        github_results: list[Document],
        blog_results: list[Document],
        changelog_results: list[Document],
        system_context: str | None = None,
        *,
        config: AggregationConfig | None = None,
    ) -> AggregatedResult:
        config = config or self._config
        sources = merge_sources(
            SourceResults(
                documentation=doc_results,
                github=github_results,
                blog=blog_results,
                changelog=changelog_results,
            ),
            config,
        )
        counts = {
            source.value: sum(1 for s in sources if s.source is source) for source in SourceType
        }
        resolved = sum(1 for s in sources if s.source is SourceType.GITHUB and s.is_resolved)
        usage = TokenUsage()

        try:
            result = await self._invoker.complete(
                "aggregation",
                system=aggregation_system_prompt(system_context),
                user=aggregation_user_prompt(query, build_multi_source_context(sources)),
                model=self._model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
            usage = result.usage
            answer = result.content
            confidence = confidence_score(sources, config)
            degraded, error = False, None
        except Exception as e:
            logger.warning("Aggregation model call failed, using source digest: %s", e)
            answer = self._fallback_answer(sources, config)
            confidence = FALLBACK_CONFIDENCE
            degraded, error = True, str(e)

        return AggregatedResult(
            answer=answer,
            sources=sources,
            confidence=confidence,
            source_count=len(sources),
            resolved_github_count=resolved,
            documentation_count=counts[SourceType.DOCUMENTATION.value],
            counts_by_source=counts,
            degraded=degraded,
            error=error,
            usage=usage,
        )

    @staticmethod
    def _fallback_answer(sources: list[MultiSourceResult], config: AggregationConfig) -> str:
        """Fixed-format digest of the top sources. Must not raise."""
        top = sources[: max(config.fallback_source_count, 0)]
        if not top:
            return "No information available from the configured sources."
        lines = ["Here are the most relevant sources found for your question:", ""]
        for index, source in enumerate(top, start=1):
            excerpt = (source.content or "")[:FALLBACK_EXCERPT_CHARS]
            lines.append(f"{index}. **{source.title}** ({source.source.value})")
            if excerpt:
                lines.append(f"   {excerpt}")
            if source.url:
                lines.append(f"   [Source: {source.title}]({source.url})")
        return "\n".join(lines)
