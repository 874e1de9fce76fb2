"""Pydantic schemas for conversation sessions and follow-up questions."""

from datetime import datetime
from typing import Any

from pydantic import Field

from search_backend.application.schemas.answer import QueryAnalysisSchema, ValidationSchema
from search_backend.application.schemas.common import CamelModel
from search_backend.domain.entities import (
    ConversationSession,
    ConversationTurn,
    OutcomeStatus,
    QueryCategory,
)


class CreateSessionRequest(CamelModel):
    context: dict[str, Any] | None = Field(default=None, description="Opaque client context")


class CreateSessionResponse(CamelModel):
    session_id: str
    created_at: datetime
    ttl_seconds: int
    max_turns: int


class TurnSchema(CamelModel):
    query: str
    answer: str
    timestamp: datetime
    query_analysis: QueryAnalysisSchema | None = None
    validation: ValidationSchema | None = None

    @classmethod
    def from_domain(cls, turn: ConversationTurn) -> "TurnSchema":
        return cls(
            query=turn.query,
            answer=turn.answer,
            timestamp=turn.timestamp,
            query_analysis=(
                QueryAnalysisSchema.from_domain(turn.analysis) if turn.analysis else None
            ),
            validation=ValidationSchema.from_domain(turn.validation) if turn.validation else None,
        )


class SessionHistoryResponse(CamelModel):
    session_id: str
    created_at: datetime
    context: dict[str, Any] = {}
    turns: list[TurnSchema] = []

    @classmethod
    def from_domain(
        cls, session: ConversationSession, turns: list[ConversationTurn]
    ) -> "SessionHistoryResponse":
        return cls(
            session_id=session.id,
            created_at=session.created_at,
            context=dict(session.context),
            turns=[TurnSchema.from_domain(turn) for turn in turns],
        )


class FollowUpRequest(CamelModel):
    query: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    session_id: str | None = None
    category: QueryCategory | None = None
    max_questions: int | None = Field(default=None, ge=1, le=10)


class FollowUpResponse(CamelModel):
    questions: list[str]
    status: OutcomeStatus = OutcomeStatus.PRIMARY
