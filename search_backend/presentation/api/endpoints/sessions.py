"""Conversation session endpoints."""

from fastapi import APIRouter, Depends, status

from search_backend.application.schemas import (
    CreateSessionRequest,
    CreateSessionResponse,
    SessionHistoryResponse,
)
from search_backend.application.services import SessionStore
from search_backend.infrastructure.dependencies import ServiceContainer, get_container, get_session_store

router = APIRouter(prefix="/session", tags=["Sessions"])


@router.post("/create", response_model=CreateSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: CreateSessionRequest | None = None,
    container: ServiceContainer = Depends(get_container),
) -> CreateSessionResponse:
    sessions = container.sessions
    session_id = sessions.create(body.context if body else None)
    session = sessions.get(session_id)
    return CreateSessionResponse(
        session_id=session_id,
        created_at=session.created_at,
        ttl_seconds=container.settings.session_ttl_seconds,
        max_turns=sessions.max_turns,
    )


@router.get("/{session_id}/history", response_model=SessionHistoryResponse)
async def get_session_history(
    session_id: str,
    sessions: SessionStore = Depends(get_session_store),
) -> SessionHistoryResponse:
    """Turns oldest first. Unknown or expired sessions are 404."""
    turns = sessions.get_history(session_id)
    return SessionHistoryResponse.from_domain(sessions.get(session_id), turns)
