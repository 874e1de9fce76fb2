"""API discovery endpoint — version, routes and rate-limit configuration."""

from fastapi import APIRouter, Depends, Request
from fastapi.routing import APIRoute

from search_backend.application.schemas import (
    ApiInfoResponse,
    EndpointInfoSchema,
    RateLimitInfoSchema,
)
from search_backend.infrastructure.dependencies import ServiceContainer, get_container

router = APIRouter(tags=["Info"])


def _describe(route: APIRoute) -> str:
    if route.summary:
        return route.summary
    first_line = (route.description or "").strip().splitlines()
    return first_line[0] if first_line else route.name.replace("_", " ")


@router.get("/info", response_model=ApiInfoResponse)
async def api_info(
    request: Request,
    container: ServiceContainer = Depends(get_container),
) -> ApiInfoResponse:
    """Lists the mounted /api routes and the public rate limit."""
    settings = container.settings
    endpoints = [
        EndpointInfoSchema(path=route.path, method=method, description=_describe(route))
        for route in request.app.routes
        if isinstance(route, APIRoute) and route.path.startswith("/api/")
        for method in sorted(route.methods)
    ]
    return ApiInfoResponse(
        name=settings.app_title,
        version=settings.app_version,
        environment=settings.app_env,
        endpoints=endpoints,
        rate_limit=RateLimitInfoSchema(
            enabled=settings.enable_rate_limit,
            window_ms=settings.rate_limit_window_seconds * 1000,
            max=settings.rate_limit,
        ),
    )
