"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from search_backend.config import Settings, get_settings
from search_backend.infrastructure.dependencies import ServiceContainer, build_container
from search_backend.infrastructure.logging.log_config import setup_logging
from search_backend.presentation.api.error_handlers import register_error_handlers
from search_backend.presentation.api.router import root_router
from search_backend.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — logging, session sweeper, shared HTTP client."""
    container: ServiceContainer = app.state.container
    setup_logging(container.settings)

    await container.sessions.start()
    logger.info(
        "%s %s started (env=%s, origins=%s)",
        container.settings.app_title,
        container.settings.app_version,
        container.settings.app_env,
        ", ".join(container.settings.allowed_origins) or "none",
    )

    yield

    # Shutdown
    await container.sessions.stop()
    await container.aclose()


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = settings or (container.settings if container else get_settings())

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.container = container or build_container(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(root_router)
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "search_backend.main:app",
        host="0.0.0.0",
        port=3000,
        reload=True,
    )
