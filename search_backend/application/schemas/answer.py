"""Pydantic schemas for keyword, answer and multi-source endpoints."""

from typing import Any

from pydantic import Field

from search_backend.application.schemas.common import (
    CamelModel,
    DocumentSchema,
    TokenUsageResponse,
)
from search_backend.domain.entities import (
    Complexity,
    ConfidenceLevel,
    MultiSourceResult,
    OutcomeStatus,
    QueryAnalysis,
    QueryCategory,
    SourceType,
    ValidationResult,
)


# ── Request Schemas ──────────────────────────────────────────────────


class KeywordsRequest(CamelModel):
    query: str = Field(..., min_length=1, description="The user's question")
    system_context: str | None = Field(default=None, description="Product/documentation context")
    max_keywords: int | None = Field(default=None, ge=1, le=20)


class GenerateAnswerRequest(CamelModel):
    query: str = Field(..., min_length=1)
    documents: list[DocumentSchema] = Field(..., description="Pre-fetched documents, best first")
    system_context: str | None = None
    model: str | None = Field(default=None, description="Override the answer model")
    max_tokens: int | None = Field(default=None, gt=0)
    session_id: str | None = Field(default=None, description="Attach the turn to a conversation")


class MultiSourceSearchRequest(CamelModel):
    query: str = Field(..., min_length=1)
    documents: list[DocumentSchema] | None = Field(
        default=None, description="Documentation results; searched when omitted"
    )
    system_context: str | None = None
    config: dict[str, Any] | None = Field(
        default=None,
        description="Overrides: weights (by source), resolvedBonus, maxResultsPerSource",
    )


# ── Response Schemas ─────────────────────────────────────────────────


class KeywordsResponse(CamelModel):
    keywords: list[str]
    usage: TokenUsageResponse
    degraded: bool = False


class QueryAnalysisSchema(CamelModel):
    category: QueryCategory
    intent: str = ""
    reformulated_query: str | None = None
    keywords: list[str] = []
    complexity: Complexity
    status: OutcomeStatus = OutcomeStatus.PRIMARY

    @classmethod
    def from_domain(
        cls, analysis: QueryAnalysis, status: OutcomeStatus = OutcomeStatus.PRIMARY
    ) -> "QueryAnalysisSchema":
        return cls(
            category=analysis.category,
            intent=analysis.intent,
            reformulated_query=analysis.reformulated_query,
            keywords=list(analysis.keywords),
            complexity=analysis.complexity,
            status=status,
        )


class QualityMetricsSchema(CamelModel):
    has_citation: bool
    citation_count: int
    has_confidence: bool
    is_not_found: bool
    has_code_example: bool
    has_steps: bool
    has_speculative_language: bool
    word_count: int


class ValidationSchema(CamelModel):
    is_valid: bool
    confidence: ConfidenceLevel
    score: int
    warnings: list[str] = []
    quality_metrics: QualityMetricsSchema

    @classmethod
    def from_domain(cls, result: ValidationResult) -> "ValidationSchema":
        m = result.quality_metrics
        return cls(
            is_valid=result.is_valid,
            confidence=result.confidence,
            score=result.score,
            warnings=list(result.warnings),
            quality_metrics=QualityMetricsSchema(
                has_citation=m.has_citation,
                citation_count=m.citation_count,
                has_confidence=m.has_confidence,
                is_not_found=m.is_not_found,
                has_code_example=m.has_code_example,
                has_steps=m.has_steps,
                has_speculative_language=m.has_speculative_language,
                word_count=m.word_count,
            ),
        )


class EnhancementSchema(CamelModel):
    enabled: bool
    status: OutcomeStatus
    initial_documents: int
    final_documents: int
    added_documents: int
    error: str | None = None


class GenerateAnswerResponse(CamelModel):
    answer: str
    usage: TokenUsageResponse
    model: str
    query_analysis: QueryAnalysisSchema
    validation: ValidationSchema
    enhancement: EnhancementSchema
    session_id: str | None = None


class SourceSchema(CamelModel):
    title: str
    url: str
    content: str
    source: SourceType
    metadata: dict[str, Any] = {}

    @classmethod
    def from_domain(cls, result: MultiSourceResult) -> "SourceSchema":
        return cls(
            title=result.title,
            url=result.url,
            content=result.content,
            source=result.source,
            metadata=dict(result.metadata),
        )


class AggregationMetricsSchema(CamelModel):
    confidence: int
    source_count: int
    resolved_github_count: int
    documentation_count: int
    counts_by_source: dict[str, int] = {}
    status: OutcomeStatus = OutcomeStatus.PRIMARY
    error: str | None = None


class MultiSourceSearchResponse(CamelModel):
    answer: str
    sources: list[SourceSchema]
    aggregation_metrics: AggregationMetricsSchema
    validation: ValidationSchema
    usage: TokenUsageResponse
