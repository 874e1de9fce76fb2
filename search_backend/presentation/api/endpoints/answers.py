"""Answer endpoints — grounded answers, multi-source search, follow-ups."""

from fastapi import APIRouter, Depends

from search_backend.application.schemas import (
    AggregationMetricsSchema,
    EnhancementSchema,
    FollowUpRequest,
    FollowUpResponse,
    GenerateAnswerRequest,
    GenerateAnswerResponse,
    MultiSourceSearchRequest,
    MultiSourceSearchResponse,
    QueryAnalysisSchema,
    SourceSchema,
    TokenUsageResponse,
    ValidationSchema,
)
from search_backend.application.services import AnswerService
from search_backend.domain.entities import OutcomeStatus
from search_backend.infrastructure.dependencies import get_answer_service, verify_recaptcha

router = APIRouter(tags=["Answers"])


@router.post(
    "/generate-answer",
    response_model=GenerateAnswerResponse,
    dependencies=[Depends(verify_recaptcha)],
)
async def generate_answer(
    body: GenerateAnswerRequest,
    service: AnswerService = Depends(get_answer_service),
) -> GenerateAnswerResponse:
    """Answer a question from the supplied documents.

    The response carries the query classification, the heuristic
    validation of the answer and what context enhancement did.
    """
    result = await service.generate_answer(
        body.query,
        [doc.to_domain() for doc in body.documents],
        system_context=body.system_context,
        model=body.model,
        max_tokens=body.max_tokens,
        session_id=body.session_id,
    )
    return GenerateAnswerResponse(
        answer=result.answer,
        usage=TokenUsageResponse.from_domain(result.usage),
        model=result.model,
        query_analysis=QueryAnalysisSchema.from_domain(
            result.query_analysis, result.classification_status
        ),
        validation=ValidationSchema.from_domain(result.validation),
        enhancement=EnhancementSchema(
            enabled=result.enhancement.enabled,
            status=result.enhancement.status,
            initial_documents=result.enhancement.initial_documents,
            final_documents=result.enhancement.final_documents,
            added_documents=result.enhancement.added_documents,
            error=result.enhancement.error,
        ),
        session_id=result.session_id,
    )


@router.post(
    "/multi-source-search",
    response_model=MultiSourceSearchResponse,
    dependencies=[Depends(verify_recaptcha)],
)
async def multi_source_search(
    body: MultiSourceSearchRequest,
    service: AnswerService = Depends(get_answer_service),
) -> MultiSourceSearchResponse:
    """Fuse documentation, resolved issues, blog posts and changelog entries."""
    documents = (
        [doc.to_domain() for doc in body.documents] if body.documents is not None else None
    )
    outcome = await service.multi_source_search(
        body.query,
        documents=documents,
        system_context=body.system_context,
        config_overrides=body.config,
    )
    result = outcome.result
    return MultiSourceSearchResponse(
        answer=result.answer,
        sources=[SourceSchema.from_domain(source) for source in result.sources],
        aggregation_metrics=AggregationMetricsSchema(
            confidence=result.confidence,
            source_count=result.source_count,
            resolved_github_count=result.resolved_github_count,
            documentation_count=result.documentation_count,
            counts_by_source=result.counts_by_source,
            status=OutcomeStatus.DEGRADED if result.degraded else OutcomeStatus.PRIMARY,
            error=result.error,
        ),
        validation=ValidationSchema.from_domain(outcome.validation),
        usage=TokenUsageResponse.from_domain(result.usage),
    )


@router.post("/follow-up-questions", response_model=FollowUpResponse)
async def follow_up_questions(
    body: FollowUpRequest,
    service: AnswerService = Depends(get_answer_service),
) -> FollowUpResponse:
    """Suggest follow-up questions; never fails on a model error."""
    outcome = await service.follow_up_questions(
        body.query,
        body.answer,
        session_id=body.session_id,
        category=body.category,
        max_questions=body.max_questions,
    )
    return FollowUpResponse(questions=outcome.value, status=outcome.status)
