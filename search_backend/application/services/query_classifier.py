"""Query classifier — assigns an intent category and skill level to a query.

Primary path: one model call that must answer in strict JSON, validated
against a boundary schema where each bad or missing field falls back to a
safe default. Fallback path: ordered regex heuristics over the raw query.
Classification never raises to the caller.
"""

import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from search_backend.application.services.llm_json import loads_model_json
from search_backend.application.services.model_invoker import ModelInvoker
from search_backend.application.services.prompt_templates import (
    CLASSIFICATION_SYSTEM_PROMPT,
    classification_user_prompt,
)
from search_backend.domain.entities import (
    Complexity,
    QueryAnalysis,
    QueryCategory,
    StageOutcome,
)

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 5

# Ordered: the first matching rule wins. Topic words (errors, setup) are
# checked before question forms so "How do I configure X?" is a
# configuration question rather than a generic how-to.
_CATEGORY_RULES: list[tuple[re.Pattern[str], QueryCategory]] = [
    (
        re.compile(r"\b(error|errors|issue|issues|problem|problems|fix|fails?|failing|broken|crash\w*|not working)\b"),
        QueryCategory.TROUBLESHOOTING,
    ),
    (
        re.compile(r"\b(setup|set up|configure\w*|configuration|config|install\w*)\b"),
        QueryCategory.CONFIGURATION,
    ),
    (re.compile(r"\bwhat (is|are|does)\b"), QueryCategory.WHAT_IS),
    (re.compile(r"\bhow (to|do|can)\b"), QueryCategory.HOW_TO),
    (re.compile(r"\b(api|method|function|endpoint|parameters?)\b"), QueryCategory.API_REFERENCE),
]

_ADVANCED_TERMS = re.compile(
    r"\b(architecture|internals?|performance|optimi[sz]\w*|scal\w+|concurrency|custom \w+|extend\w*|advanced)\b"
)
_INTERMEDIATE_TERMS = re.compile(
    r"\b(integrat\w+|migrat\w+|deploy\w*|customi[sz]\w*|production|multiple|best practices?)\b"
)


class _ClassificationPayload(BaseModel):
    """Boundary schema for the model's JSON classification.

    Each field validator swallows its own validation error and returns the
    field default, so one bad field never discards the others.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    category: QueryCategory = QueryCategory.GENERAL
    intent: str = ""
    reformulated_query: str | None = Field(default=None, alias="reformulatedQuery")
    keywords: list[str] = Field(default_factory=list)
    complexity: Complexity = Complexity.BEGINNER

    @field_validator("category", mode="wrap")
    @classmethod
    def _category_or_general(cls, value: Any, handler):
        if isinstance(value, str):
            value = value.strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return handler(value)
        except ValidationError:
            return QueryCategory.GENERAL

    @field_validator("complexity", mode="wrap")
    @classmethod
    def _complexity_or_beginner(cls, value: Any, handler):
        if isinstance(value, str):
            value = value.strip().lower()
        try:
            return handler(value)
        except ValidationError:
            return Complexity.BEGINNER

    @field_validator("intent", mode="wrap")
    @classmethod
    def _intent_or_empty(cls, value: Any, handler):
        try:
            return handler(value)
        except ValidationError:
            return ""

    @field_validator("reformulated_query", mode="wrap")
    @classmethod
    def _reformulated_or_none(cls, value: Any, handler):
        try:
            result = handler(value)
        except ValidationError:
            return None
        return result or None

    @field_validator("keywords", mode="before")
    @classmethod
    def _string_keywords(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [k.strip() for k in value if isinstance(k, str) and k.strip()]

    def to_analysis(self) -> QueryAnalysis:
        return QueryAnalysis(
            category=self.category,
            intent=self.intent,
            reformulated_query=self.reformulated_query,
            keywords=tuple(self.keywords[:MAX_KEYWORDS]),
            complexity=self.complexity,
        )


def classify_heuristically(query: str) -> QueryAnalysis:
    """Regex fallback classification. Deterministic, no I/O."""
    text = query.lower()
    category = QueryCategory.GENERAL
    for pattern, candidate in _CATEGORY_RULES:
        if pattern.search(text):
            category = candidate
            break

    return QueryAnalysis(
        category=category,
        intent=f"{category.value} question",
        reformulated_query=None,
        keywords=tuple(fallback_keywords(query)),
        complexity=estimate_complexity(query),
    )


def fallback_keywords(query: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """Lowercase tokens longer than two characters, capped at ``limit``."""
    tokens = (token.strip("?!.,;:\"'()") for token in query.lower().split())
    return [token for token in tokens if len(token) > 2][:limit]


def estimate_complexity(query: str) -> Complexity:
    text = query.lower()
    if _ADVANCED_TERMS.search(text):
        return Complexity.ADVANCED
    if _INTERMEDIATE_TERMS.search(text):
        return Complexity.INTERMEDIATE
    return Complexity.BEGINNER


def infer_user_level(trust_level: int) -> Complexity:
    """Map a forum trust level (0–4) to a skill estimate."""
    if trust_level <= 1:
        return Complexity.BEGINNER
    if trust_level <= 3:
        return Complexity.INTERMEDIATE
    return Complexity.ADVANCED


class QueryClassifier:
    """Classifies queries with a model call, degrading to heuristics."""

    def __init__(self, invoker: ModelInvoker, *, model: str):
        self._invoker = invoker
        self._model = model

    async def classify(self, query: str) -> QueryAnalysis:
        """Best-effort classification; never raises."""
        outcome = await self.classify_outcome(query)
        return outcome.value

    async def classify_outcome(self, query: str) -> StageOutcome[QueryAnalysis]:
        try:
            result = await self._invoker.complete(
                "classification",
                system=CLASSIFICATION_SYSTEM_PROMPT,
                user=classification_user_prompt(query),
                model=self._model,
                temperature=0.0,
                max_tokens=300,
            )
            data = loads_model_json(result.content)
            if not isinstance(data, dict):
                raise ValueError("Classification output is not a JSON object")
            analysis = _ClassificationPayload.model_validate(data).to_analysis()
        except Exception as e:
            logger.warning("Query classification degraded to heuristics: %s", e)
            return StageOutcome.fallback(classify_heuristically(query), e)

        logger.debug("Query classified as %s (%s)", analysis.category.value, analysis.complexity.value)
        return StageOutcome.primary(analysis)
