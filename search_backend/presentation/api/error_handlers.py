"""Exception → JSON error envelope mapping.

Every error leaves the API as
``{"error": {"message", "statusCode", "timestamp", "details"?}}``.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from search_backend.domain.exceptions import (
    AccessDeniedError,
    ChatProviderError,
    EntityNotFoundError,
    RateLimitExceededError,
    SearchProviderError,
)

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    *,
    details: Any = None,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    body: dict[str, Any] = {
        "message": message,
        "statusCode": status_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **extra,
    }
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return error_response(400, "Invalid request", details=details)


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def _provider_error(request: Request, exc: ChatProviderError) -> JSONResponse:
    status_code = exc.status_code if 400 <= exc.status_code < 600 else 502
    logger.error("Model provider error on %s: %s", request.url.path, exc)
    return error_response(status_code, f"[{exc.provider}] {exc.message}")


async def _search_error(request: Request, exc: SearchProviderError) -> JSONResponse:
    logger.error("Search provider error on %s: %s", request.url.path, exc)
    return error_response(502, f"[{exc.provider}] {exc.message}")


async def _rate_limited(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    return error_response(
        429,
        exc.message,
        headers={"Retry-After": str(exc.retry_after)},
        retryAfter=exc.retry_after,
    )


async def _not_found(request: Request, exc: EntityNotFoundError) -> JSONResponse:
    return error_response(404, str(exc))


async def _access_denied(request: Request, exc: AccessDeniedError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(ChatProviderError, _provider_error)
    app.add_exception_handler(SearchProviderError, _search_error)
    app.add_exception_handler(RateLimitExceededError, _rate_limited)
    app.add_exception_handler(EntityNotFoundError, _not_found)
    app.add_exception_handler(AccessDeniedError, _access_denied)
    app.add_exception_handler(Exception, _unhandled)
