"""Domain entities for conversation sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .query_analysis import QueryAnalysis
from .validation import ValidationResult


@dataclass
class ConversationTurn:
    """One query/answer exchange inside a session."""

    query: str
    answer: str
    timestamp: datetime
    analysis: QueryAnalysis | None = None
    validation: ValidationResult | None = None


@dataclass
class ConversationSession:
    """Process-local conversation state.

    ``last_active_at`` is a monotonic clock reading used for expiry;
    ``created_at`` is the wall-clock creation time reported to clients.
    """

    id: str
    created_at: datetime
    last_active_at: float
    context: dict[str, Any] = field(default_factory=dict)
    turns: list[ConversationTurn] = field(default_factory=list)
