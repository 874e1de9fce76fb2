"""Community-forum responder endpoints (bearer-token protected)."""

from fastapi import APIRouter, Depends

from search_backend.application.schemas import DiscourseRequest, DiscourseResponse
from search_backend.infrastructure.dependencies import ServiceContainer, get_container

router = APIRouter(tags=["Discourse"])


@router.post("/discourse-response", response_model=DiscourseResponse)
async def discourse_response(
    body: DiscourseRequest,
    container: ServiceContainer = Depends(get_container),
) -> DiscourseResponse:
    """Draft a documentation-grounded reply and say whether to post it."""
    options = body.config.to_domain() if body.config else None
    reply = await container.discourse.respond(body.post.to_domain(), options)
    return DiscourseResponse.from_domain(reply)


@router.get("/discourse-metrics")
async def discourse_metrics(container: ServiceContainer = Depends(get_container)) -> dict:
    """Forum responder counters, cache statistics and per-feature model usage."""
    return {
        **container.discourse.metrics_snapshot(),
        "llm_usage": container.usage_logger.snapshot(),
    }
