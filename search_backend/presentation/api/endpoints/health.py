"""Health check endpoint — no dependencies, always available."""

from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict:
    """Returns the current application health status."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
