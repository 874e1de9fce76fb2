from .answer import (
    AggregationMetricsSchema,
    EnhancementSchema,
    GenerateAnswerRequest,
    GenerateAnswerResponse,
    KeywordsRequest,
    KeywordsResponse,
    MultiSourceSearchRequest,
    MultiSourceSearchResponse,
    QueryAnalysisSchema,
    SourceSchema,
    ValidationSchema,
)
from .chat import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessageSchema,
    SummarizeRequest,
    SummarizeResponse,
)
from .common import CamelModel, DocumentSchema, TokenUsageResponse
from .discourse import DiscourseRequest, DiscourseResponse
from .info import ApiInfoResponse, EndpointInfoSchema, RateLimitInfoSchema
from .session import (
    CreateSessionRequest,
    CreateSessionResponse,
    FollowUpRequest,
    FollowUpResponse,
    SessionHistoryResponse,
)

__all__ = [
    "AggregationMetricsSchema",
    "EnhancementSchema",
    "GenerateAnswerRequest",
    "GenerateAnswerResponse",
    "KeywordsRequest",
    "KeywordsResponse",
    "MultiSourceSearchRequest",
    "MultiSourceSearchResponse",
    "QueryAnalysisSchema",
    "SourceSchema",
    "ValidationSchema",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessageSchema",
    "SummarizeRequest",
    "SummarizeResponse",
    "CamelModel",
    "DocumentSchema",
    "TokenUsageResponse",
    "DiscourseRequest",
    "DiscourseResponse",
    "ApiInfoResponse",
    "EndpointInfoSchema",
    "RateLimitInfoSchema",
    "CreateSessionRequest",
    "CreateSessionResponse",
    "FollowUpRequest",
    "FollowUpResponse",
    "SessionHistoryResponse",
]
