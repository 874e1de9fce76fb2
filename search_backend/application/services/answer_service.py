"""Answer pipeline — keywords, grounded answers, multi-source search,
follow-up questions, summaries and raw chat passthrough.

Only the primary model call of each operation and input validation may
fail a request; classification, context enhancement and follow-up
generation degrade to deterministic fallbacks.
"""

import logging
import re
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from search_backend.application.interfaces.document_searcher import (
    DocumentSearcher,
    NullSearcher,
)
from search_backend.application.services.context_builder import (
    build_context,
    format_conversation,
)
from search_backend.application.services.context_enhancer import ContextEnhancer
from search_backend.application.services.llm_json import loads_string_list
from search_backend.application.services.model_invoker import ModelInvoker
from search_backend.application.services.multi_source_aggregator import MultiSourceAggregator
from search_backend.application.services.prompt_templates import (
    FOLLOW_UP_FALLBACKS,
    SUMMARIZE_SYSTEM_PROMPT,
    answer_user_prompt,
    follow_up_system_prompt,
    follow_up_user_prompt,
    keyword_system_prompt,
    keyword_user_prompt,
    select_template,
    summarize_user_prompt,
)
from search_backend.application.services.query_classifier import (
    QueryClassifier,
    classify_heuristically,
)
from search_backend.application.services.response_validator import ResponseValidator
from search_backend.application.services.session_store import SessionStore
from search_backend.domain.entities import (
    AggregatedResult,
    ChatCompletionResult,
    ChatMessage,
    ConversationTurn,
    Document,
    OutcomeStatus,
    QueryAnalysis,
    QueryCategory,
    StageOutcome,
    TokenUsage,
    ValidationResult,
)
from search_backend.domain.exceptions import ChatProviderError
from search_backend.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("AnswerService")

UNABLE_TO_ANSWER = "Unable to generate answer"
UNABLE_TO_SUMMARIZE = "Unable to generate summary"

_TOPIC_STOPWORDS = frozenset(
    "how what why when where which who does did can could should would the and for "
    "with use using are was were this that there from into about get set "
    "configure setup install fix".split()
)
_WORD = re.compile(r"[a-z0-9][a-z0-9_.\-]*")


def naive_keywords(query: str, max_keywords: int) -> list[str]:
    """Keyword fallback: the query itself, then its lowercase words longer
    than two characters, truncated to ``max_keywords``."""
    words = [word for word in query.lower().split() if len(word) > 2]
    return [query, *words][:max_keywords]


def follow_up_topic(query: str) -> str:
    """Pull a short topic phrase out of a question for the fallback templates."""
    words = [w.strip(".-") for w in _WORD.findall(query.lower())]
    topic = [w for w in words if len(w) > 2 and w not in _TOPIC_STOPWORDS][:3]
    return " ".join(topic) or "this topic"


def fallback_follow_ups(query: str, category: QueryCategory | None, max_questions: int) -> list[str]:
    category = category or classify_heuristically(query).category
    topic = follow_up_topic(query)
    templates = FOLLOW_UP_FALLBACKS.get(category, FOLLOW_UP_FALLBACKS[QueryCategory.GENERAL])
    return [template.format(topic=topic) for template in templates][:max_questions]


@dataclass
class KeywordsResult:
    keywords: list[str]
    usage: TokenUsage
    degraded: bool = False


@dataclass
class EnhancementInfo:
    """What the context-enhancement stage did for one answer."""

    enabled: bool
    status: OutcomeStatus
    initial_documents: int
    final_documents: int
    error: str | None = None

    @property
    def added_documents(self) -> int:
        return self.final_documents - self.initial_documents


@dataclass
class AnswerResult:
    answer: str
    usage: TokenUsage
    model: str
    query_analysis: QueryAnalysis
    classification_status: OutcomeStatus
    validation: ValidationResult
    enhancement: EnhancementInfo
    session_id: str | None = None


@dataclass
class MultiSourceAnswer:
    result: AggregatedResult
    validation: ValidationResult


@dataclass
class SummaryResult:
    summary: str
    usage: TokenUsage
    model: str


@dataclass
class AnswerServiceConfig:
    """Models and generation limits used by the pipeline."""

    keyword_model: str = "gpt-4.1"
    answer_model: str = "gpt-4.1"
    summary_model: str = "gpt-3.5-turbo"
    follow_up_model: str = "gpt-4o-mini"
    keyword_max_tokens: int = 200
    answer_max_tokens: int = 2000
    summary_max_tokens: int = 1000
    chat_max_tokens: int = 2000
    chat_temperature: float = 0.5
    temperature: float = 0.3
    max_keywords: int = 5
    max_documents: int = 10
    max_follow_ups: int = 3


class AnswerService:
    """Orchestrates the request pipeline: classify → template → context →
    model call → validate, with session history read before and written
    after."""

    def __init__(
        self,
        invoker: ModelInvoker,
        *,
        classifier: QueryClassifier,
        validator: ResponseValidator,
        sessions: SessionStore,
        aggregator: MultiSourceAggregator,
        enhancer: ContextEnhancer | None = None,
        docs_searcher: DocumentSearcher | None = None,
        config: AnswerServiceConfig | None = None,
    ):
        self._invoker = invoker
        self._classifier = classifier
        self._validator = validator
        self._sessions = sessions
        self._aggregator = aggregator
        self._docs_searcher = docs_searcher or NullSearcher("documentation")
        self._enhancer = enhancer or ContextEnhancer(
            invoker, self._docs_searcher, model="", enabled=False
        )
        self._config = config or AnswerServiceConfig()

    @property
    def config(self) -> AnswerServiceConfig:
        return self._config

    # ── Keywords ───────────────────────────────────────────────────

    async def generate_keywords(
        self,
        query: str,
        *,
        system_context: str | None = None,
        max_keywords: int | None = None,
    ) -> KeywordsResult:
        """Ask the model for search keywords; unparseable output falls back
        to naive tokenization. A failed model call propagates."""
        max_keywords = max_keywords or self._config.max_keywords
        result = await self._invoker.complete(
            "keywords",
            system=keyword_system_prompt(max_keywords, system_context),
            user=keyword_user_prompt(query),
            model=self._config.keyword_model,
            temperature=self._config.temperature,
            max_tokens=self._config.keyword_max_tokens,
        )
        try:
            keywords = loads_string_list(result.content or "[]")
        except ValueError:
            logger.warning("Failed to parse keywords, using tokenized query: %r", result.content[:200])
            return KeywordsResult(
                keywords=naive_keywords(query, max_keywords),
                usage=result.usage,
                degraded=True,
            )
        return KeywordsResult(keywords=keywords[:max_keywords], usage=result.usage)

    # ── Answer generation ──────────────────────────────────────────

    async def generate_answer(
        self,
        query: str,
        documents: list[Document],
        *,
        system_context: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        session_id: str | None = None,
    ) -> AnswerResult:
        # Raises EntityNotFoundError for unknown/expired sessions before any model call.
        history = self._sessions.get_history(session_id) if session_id else []

        classification = await self._classifier.classify_outcome(query)
        analysis = classification.value
        if classification.status is OutcomeStatus.PRIMARY:
            plog.step_complete(
                PipelineStage.CLASSIFICATION,
                analysis.category.value,
                complexity=analysis.complexity.value,
            )
        else:
            plog.step_degraded(
                PipelineStage.CLASSIFICATION,
                f"Heuristic category {analysis.category.value}",
                classification.error,
            )

        enhancement = await self._enhancer.enhance(query, documents)
        context_documents = enhancement.value[: self._config.max_documents]
        if self._enhancer.enabled:
            plog.step_complete(
                PipelineStage.ENHANCEMENT,
                "Context enhancement",
                status=enhancement.status.value,
                documents=f"{len(documents)}→{len(enhancement.value)}",
            )

        conversation = (
            format_conversation([(turn.query, turn.answer) for turn in history]) if history else None
        )
        model = model or self._config.answer_model
        plog.step_start(
            PipelineStage.GENERATION,
            "Generating answer",
            model=model,
            documents=len(context_documents),
            turns=len(history),
        )
        result = await self._invoker.complete(
            "answer",
            system=select_template(
                analysis.category, system_context, complexity=analysis.complexity.value
            ),
            user=answer_user_prompt(query, build_context(context_documents), conversation),
            model=model,
            temperature=self._config.temperature,
            max_tokens=max_tokens or self._config.answer_max_tokens,
        )
        answer = result.content or UNABLE_TO_ANSWER
        validation = self._validator.validate(answer, context_documents)

        plog.step_complete(
            PipelineStage.VALIDATION,
            "valid" if validation.is_valid else "below threshold",
            score=validation.score,
            confidence=validation.confidence.value,
        )
        if not validation.is_valid:
            logger.info("Answer warnings: %s", "; ".join(validation.warnings))

        if session_id:
            self._sessions.append_turn(
                session_id,
                ConversationTurn(
                    query=query,
                    answer=answer,
                    timestamp=datetime.now(timezone.utc),
                    analysis=analysis,
                    validation=validation,
                ),
            )

        return AnswerResult(
            answer=answer,
            usage=result.usage,
            model=result.model or model,
            query_analysis=analysis,
            classification_status=classification.status,
            validation=validation,
            enhancement=EnhancementInfo(
                enabled=self._enhancer.enabled,
                status=enhancement.status,
                initial_documents=len(documents),
                final_documents=len(enhancement.value),
                error=enhancement.error,
            ),
            session_id=session_id,
        )

    # ── Multi-source search ────────────────────────────────────────

    async def multi_source_search(
        self,
        query: str,
        *,
        documents: list[Document] | None = None,
        system_context: str | None = None,
        config_overrides: dict[str, Any] | None = None,
    ) -> MultiSourceAnswer:
        """Aggregate caller-supplied (or searched) documentation with issue,
        blog and changelog results."""
        config = self._aggregator.config.with_overrides(config_overrides)

        if documents is None:
            documents = await self._search_documentation(query, config.results_per_source)
        github, blog, changelog = await self._aggregator.search_all_sources(
            query, limit=config.results_per_source
        )
        result = await self._aggregator.aggregate(
            query,
            documents,
            github,
            blog,
            changelog,
            system_context,
            config=config,
        )
        validation = self._validator.validate(result.answer, result.sources)
        plog.step_complete(
            PipelineStage.AGGREGATION,
            "Multi-source answer",
            sources=len(result.sources),
            confidence=result.confidence,
            score=validation.score,
        )
        return MultiSourceAnswer(result=result, validation=validation)

    async def _search_documentation(self, query: str, limit: int) -> list[Document]:
        if not self._docs_searcher.enabled:
            return []
        try:
            return await self._docs_searcher.search(query, limit=limit)
        except Exception as e:
            logger.warning("Documentation search failed, continuing without it: %s", e)
            return []

    # ── Follow-up questions ────────────────────────────────────────

    async def follow_up_questions(
        self,
        query: str,
        answer: str,
        *,
        session_id: str | None = None,
        category: QueryCategory | None = None,
        max_questions: int | None = None,
    ) -> StageOutcome[list[str]]:
        """Suggest next questions; falls back to per-category templates."""
        max_questions = max_questions or self._config.max_follow_ups
        history: list[str] = []
        if session_id:
            turns = self._sessions.get_history(session_id)
            history = [turn.query for turn in turns]
            if category is None and turns and turns[-1].analysis is not None:
                category = turns[-1].analysis.category

        try:
            result = await self._invoker.complete(
                "follow_up",
                system=follow_up_system_prompt(max_questions),
                user=follow_up_user_prompt(query, answer, history),
                model=self._config.follow_up_model,
                temperature=0.7,
                max_tokens=300,
            )
            questions = loads_string_list(result.content)
            if not questions:
                raise ValueError("Model returned no follow-up questions")
        except Exception as e:
            logger.warning("Follow-up generation degraded to templates: %s", e)
            return StageOutcome.fallback(fallback_follow_ups(query, category, max_questions), e)
        return StageOutcome.primary(questions[:max_questions])

    # ── Legacy passthroughs ────────────────────────────────────────

    async def summarize(
        self,
        query: str,
        content: list[str],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        system_prompt: str | None = None,
    ) -> SummaryResult:
        model = model or self._config.summary_model
        result = await self._invoker.complete(
            "summarize",
            system=system_prompt or SUMMARIZE_SYSTEM_PROMPT,
            user=summarize_user_prompt(query, content),
            model=model,
            temperature=0.3,
            max_tokens=max_tokens or self._config.summary_max_tokens,
        )
        return SummaryResult(
            summary=result.content or UNABLE_TO_SUMMARIZE,
            usage=result.usage,
            model=result.model or model,
        )

    async def chat(
        self,
        messages: list[ChatMessage],
        *,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        return await self._invoker.complete_messages(
            "chat",
            messages,
            model=model,
            temperature=self._config.chat_temperature if temperature is None else temperature,
            max_tokens=max_tokens or self._config.chat_max_tokens,
        )

    async def chat_stream(
        self,
        messages: list[ChatMessage],
        *,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Yield provider SSE lines unchanged and log the call once it ends."""
        provider = self._invoker.provider
        usage_logger = self._invoker.usage_logger
        start = time.monotonic()
        try:
            async for chunk in provider.stream(
                messages=messages,
                model=model,
                temperature=self._config.chat_temperature if temperature is None else temperature,
                max_tokens=max_tokens or self._config.chat_max_tokens,
            ):
                yield chunk
        except ChatProviderError as e:
            usage_logger.log_error(
                model=model,
                provider=provider.provider_name,
                feature="chat_stream",
                duration_ms=int((time.monotonic() - start) * 1000),
                error=e,
            )
            raise
        usage_logger.log_request(
            model=model,
            provider=provider.provider_name,
            feature="chat_stream",
            usage=TokenUsage(),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
