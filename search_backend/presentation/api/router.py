"""Top-level API routers — public endpoints, API info, forum endpoints and health."""

from fastapi import APIRouter, Depends

from search_backend.infrastructure.dependencies import enforce_rate_limit, require_discourse_token
from search_backend.presentation.api.endpoints.answers import router as answers_router
from search_backend.presentation.api.endpoints.chat import router as chat_router
from search_backend.presentation.api.endpoints.discourse import router as discourse_router
from search_backend.presentation.api.endpoints.health import router as health_router
from search_backend.presentation.api.endpoints.info import router as info_router
from search_backend.presentation.api.endpoints.keywords import router as keywords_router
from search_backend.presentation.api.endpoints.sessions import router as sessions_router

router = APIRouter(prefix="/api")

public = [Depends(enforce_rate_limit)]
router.include_router(keywords_router, dependencies=public)
router.include_router(answers_router, dependencies=public)
router.include_router(sessions_router, dependencies=public)
router.include_router(chat_router, dependencies=public)
router.include_router(info_router, dependencies=public)
# Forum integrations authenticate with a bearer token and have their own limiter.
router.include_router(discourse_router, dependencies=[Depends(require_discourse_token)])

root_router = APIRouter()
root_router.include_router(health_router)
