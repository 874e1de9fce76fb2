from .chat_message import ChatMessage, TokenUsage, ChatCompletionResult
from .document import AggregatedResult, Document, MultiSourceResult, SourceType
from .outcome import OutcomeStatus, StageOutcome
from .query_analysis import Complexity, QueryAnalysis, QueryCategory
from .session import ConversationSession, ConversationTurn
from .validation import ConfidenceLevel, QualityMetrics, ValidationResult

__all__ = [
    "ChatMessage",
    "TokenUsage",
    "ChatCompletionResult",
    "AggregatedResult",
    "Document",
    "MultiSourceResult",
    "SourceType",
    "OutcomeStatus",
    "StageOutcome",
    "Complexity",
    "QueryAnalysis",
    "QueryCategory",
    "ConversationSession",
    "ConversationTurn",
    "ConfidenceLevel",
    "QualityMetrics",
    "ValidationResult",
]
