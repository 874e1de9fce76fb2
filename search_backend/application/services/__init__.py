from .answer_service import AnswerService, AnswerServiceConfig
from .context_enhancer import ContextEnhancer
from .discourse_service import DiscourseService
from .llm_usage_logger import LLMUsageLogger
from .model_invoker import ModelInvoker
from .multi_source_aggregator import AggregationConfig, MultiSourceAggregator
from .query_classifier import QueryClassifier
from .rate_limiter import RateLimiter
from .response_cache import ResponseCache
from .response_validator import ResponseValidator
from .session_store import SessionStore

__all__ = [
    "AnswerService",
    "AnswerServiceConfig",
    "ContextEnhancer",
    "DiscourseService",
    "LLMUsageLogger",
    "ModelInvoker",
    "AggregationConfig",
    "MultiSourceAggregator",
    "QueryClassifier",
    "RateLimiter",
    "ResponseCache",
    "ResponseValidator",
    "SessionStore",
]
