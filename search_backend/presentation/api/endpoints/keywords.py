"""Search keyword generation endpoint."""

from fastapi import APIRouter, Depends

from search_backend.application.schemas import KeywordsRequest, KeywordsResponse, TokenUsageResponse
from search_backend.application.services import AnswerService
from search_backend.infrastructure.dependencies import get_answer_service, verify_recaptcha

router = APIRouter(tags=["Search"])


@router.post(
    "/keywords",
    response_model=KeywordsResponse,
    dependencies=[Depends(verify_recaptcha)],
)
async def generate_keywords(
    body: KeywordsRequest,
    service: AnswerService = Depends(get_answer_service),
) -> KeywordsResponse:
    """Turn a question into search keywords for the caller's index.

    Falls back to the query plus its longer words when the model output
    is not a JSON array.
    """
    result = await service.generate_keywords(
        body.query,
        system_context=body.system_context,
        max_keywords=body.max_keywords,
    )
    return KeywordsResponse(
        keywords=result.keywords,
        usage=TokenUsageResponse.from_domain(result.usage),
        degraded=result.degraded,
    )
