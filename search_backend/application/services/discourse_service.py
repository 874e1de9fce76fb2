"""Community-forum responder.

Turns a forum post into a documentation-grounded reply: clean the post,
infer the asker's level and the post type, generate search keywords, run
several index queries concurrently, generate a reply and decide whether
it is good enough to post. Replies are cached per category and content
hash, and per-process metrics are kept for the metrics endpoint.
"""

import asyncio
import hashlib
import logging
import re
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Any

from search_backend.application.interfaces.document_searcher import DocumentSearcher
from search_backend.application.services.context_builder import build_context
from search_backend.application.services.llm_json import loads_string_list
from search_backend.application.services.model_invoker import ModelInvoker
from search_backend.application.services.prompt_templates import (
    discourse_keyword_context,
    discourse_system_prompt,
    keyword_system_prompt,
)
from search_backend.application.services.query_classifier import infer_user_level
from search_backend.application.services.response_cache import ResponseCache
from search_backend.domain.entities import ConfidenceLevel, Document, TokenUsage
from search_backend.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("DiscourseService")

DISCOURSE_KEYWORDS = 6
PRIMARY_HITS = 4
SECONDARY_HITS = 4
PER_KEYWORD_HITS = 2

_HTML_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")
_STEPS = re.compile(r"step \d+|1\.|2\.|3\.|•|\*", re.IGNORECASE)
_MARKDOWN_LINK = re.compile(r"\[.*?\]\(.*?\)")

_POST_TYPE_RULES: list[tuple[tuple[str, ...], str]] = [
    (("how to", "how do"), "how-to"),
    (("what is", "what are"), "what-is"),
    (("error", "issue", "problem"), "troubleshooting"),
    (("setup", "configure", "install"), "configuration"),
    (("api", "method", "function"), "api-reference"),
]


@dataclass
class ForumUser:
    username: str
    trust_level: int = 0


@dataclass
class ForumPost:
    title: str
    content: str
    category: str
    user: ForumUser
    url: str = ""


@dataclass
class ReplyOptions:
    max_response_length: int | None = None
    tone: str = "helpful"
    include_code_examples: bool = True


@dataclass
class PostContext:
    category: str
    user_level: str
    post_type: str


@dataclass
class ReplyAssessment:
    confidence: ConfidenceLevel
    should_post: bool
    reasoning: str
    quality_score: float


@dataclass
class ForumSource:
    title: str
    url: str
    relevance_score: float


@dataclass
class ForumReply:
    content: str
    assessment: ReplyAssessment
    sources: list[ForumSource]
    keywords_used: list[str]
    documents_analyzed: int
    processing_time_ms: int
    query_type: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    cached: bool = False


@dataclass
class DiscourseMetrics:
    requests_total: int = 0
    requests_successful: int = 0
    requests_failed: int = 0
    avg_processing_time: float = 0.0
    confidence_distribution: dict[str, int] = field(
        default_factory=lambda: {"HIGH": 0, "MEDIUM": 0, "LOW": 0}
    )

    def record(self, *, success: bool, processing_time_ms: int, confidence: str | None = None) -> None:
        if success:
            self.requests_successful += 1
            if confidence in self.confidence_distribution:
                self.confidence_distribution[confidence] += 1
        else:
            self.requests_failed += 1
        self.requests_total += 1
        previous = self.avg_processing_time * (self.requests_total - 1)
        self.avg_processing_time = (previous + processing_time_ms) / self.requests_total

    @property
    def success_rate(self) -> float:
        return self.requests_successful / self.requests_total if self.requests_total else 0.0


# ── Pure helpers ────────────────────────────────────────────────────


def cache_key(post: ForumPost) -> str:
    """``discourse:{category-slug}:{md5(title + content)}``."""
    digest = hashlib.md5((post.title + post.content).encode("utf-8")).hexdigest()
    slug = _WHITESPACE.sub("-", post.category.lower())
    return f"discourse:{slug}:{digest}"


def clean_post_content(content: str) -> str:
    return _WHITESPACE.sub(" ", _HTML_TAG.sub("", content)).strip()


def classify_post_type(title: str, content: str) -> str:
    text = f"{title} {content}".lower()
    for needles, post_type in _POST_TYPE_RULES:
        if any(needle in text for needle in needles):
            return post_type
    return "general"


def assess_reply(answer: str, sources: list[Any], original_query: str) -> ReplyAssessment:
    """Forum posting rubric.

    Code block +25, any sources +30, step structure +20, markdown links +15,
    more than 200 characters +10, plus query-word overlap times 25.
    80 and above posts with HIGH confidence, 60 and above with MEDIUM.
    """
    query_words = original_query.lower().split()
    answer_words = set(answer.lower().split())
    relevance = (
        sum(1 for word in query_words if word in answer_words) / len(query_words)
        if query_words
        else 0.0
    )

    score = 0.0
    if "```" in answer:
        score += 25
    if sources:
        score += 30
    if _STEPS.search(answer):
        score += 20
    if _MARKDOWN_LINK.search(answer):
        score += 15
    if len(answer) > 200:
        score += 10
    score += relevance * 25

    if score >= 80:
        return ReplyAssessment(
            ConfidenceLevel.HIGH, True, "High-quality response with complete information", score
        )
    if score >= 60:
        return ReplyAssessment(
            ConfidenceLevel.MEDIUM, True, "Good response, may need minor review", score
        )
    return ReplyAssessment(
        ConfidenceLevel.LOW, False, "Insufficient information or low relevance", score
    )


def dedupe_hits(hits: list[Document]) -> list[Document]:
    """First occurrence wins, keyed by object id (url or title when absent)."""
    seen: dict[str, Document] = {}
    for hit in hits:
        seen.setdefault(hit.object_id or hit.dedupe_key, hit)
    return list(seen.values())


class DiscourseService:
    """Generates, scores and caches replies to community forum posts."""

    def __init__(
        self,
        invoker: ModelInvoker,
        searcher: DocumentSearcher,
        *,
        model: str,
        product_name: str = "the product",
        max_response_length: int = 1500,
        cache: ResponseCache | None = None,
        cache_enabled: bool = True,
    ):
        self._invoker = invoker
        self._searcher = searcher
        self._model = model
        self._product = product_name
        self._max_response_length = max_response_length
        self._cache = cache or ResponseCache()
        self._cache_enabled = cache_enabled
        self._metrics = DiscourseMetrics()

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def metrics(self) -> DiscourseMetrics:
        return self._metrics

    def metrics_snapshot(self) -> dict[str, Any]:
        cache_stats = self._cache.stats()
        return {
            **asdict(self._metrics),
            "success_rate": self._metrics.success_rate,
            "cache_hit_rate": cache_stats["hit_rate"],
            "cache": cache_stats,
        }

    def analyze_post(self, post: ForumPost) -> tuple[str, PostContext]:
        """Return the combined search query and the inferred post context."""
        cleaned = clean_post_content(post.content)
        context = PostContext(
            category=post.category,
            user_level=infer_user_level(post.user.trust_level).value,
            post_type=classify_post_type(post.title, post.content),
        )
        return f"{post.title} {cleaned}", context

    async def respond(self, post: ForumPost, options: ReplyOptions | None = None) -> ForumReply:
        options = options or ReplyOptions()
        start = time.monotonic()
        key = cache_key(post)

        if self._cache_enabled:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("Forum reply served from cache (%s)", key)
                return replace(cached, cached=True)

        try:
            query, context = self.analyze_post(post)
            plog.step_start(
                PipelineStage.FORUM,
                "Answering forum post",
                post_type=context.post_type,
                level=context.user_level,
            )
            keywords, keyword_usage = await self._keywords(query, context)
            documents = await self._search(keywords, query)
            plog.detail("Index search", keywords=len(keywords), documents=len(documents))
            answer, usage = await self._generate(query, documents, context, options)
            usage.add(keyword_usage)
            assessment = assess_reply(answer, documents, query)
        except Exception as e:
            plog.step_error(PipelineStage.ERROR, "Forum reply failed", e)
            self._metrics.record(
                success=False, processing_time_ms=int((time.monotonic() - start) * 1000)
            )
            raise

        elapsed_ms = int((time.monotonic() - start) * 1000)
        reply = ForumReply(
            content=answer,
            assessment=assessment,
            sources=[
                ForumSource(
                    title=doc.title,
                    url=doc.url,
                    relevance_score=round(1.0 - index / len(documents), 2),
                )
                for index, doc in enumerate(documents)
            ],
            keywords_used=keywords,
            documents_analyzed=len(documents),
            processing_time_ms=elapsed_ms,
            query_type=context.post_type,
            usage=usage,
        )
        self._metrics.record(
            success=True,
            processing_time_ms=elapsed_ms,
            confidence=assessment.confidence.value,
        )
        plog.step_complete(
            PipelineStage.FORUM,
            "Reply ready",
            confidence=assessment.confidence.value,
            score=f"{assessment.quality_score:.1f}",
            docs=len(documents),
            ms=elapsed_ms,
        )
        plog.stats(success_rate=f"{self._metrics.success_rate:.2f}", should_post=assessment.should_post)
        if self._cache_enabled:
            self._cache.set(key, reply)
        return reply

    async def _keywords(self, query: str, context: PostContext) -> tuple[list[str], TokenUsage]:
        system_context = discourse_keyword_context(
            self._product, context.category, context.user_level, context.post_type
        )
        try:
            result = await self._invoker.complete(
                "discourse_keywords",
                system=keyword_system_prompt(DISCOURSE_KEYWORDS, system_context),
                user=query,
                model=self._model,
                temperature=0.3,
                max_tokens=200,
            )
            return loads_string_list(result.content), result.usage
        except Exception as e:
            logger.warning("Forum keyword generation degraded to tokens: %s", e)
            return [word for word in query.lower().split() if len(word) > 2], TokenUsage()

    async def _search(self, keywords: list[str], query: str) -> list[Document]:
        """Original query, joined keywords and the two leading keywords, concurrently."""
        searches = [(query, PRIMARY_HITS)]
        if keywords:
            searches.append((" ".join(keywords), SECONDARY_HITS))
            searches.extend((keyword, PER_KEYWORD_HITS) for keyword in keywords[:2])
        results = await asyncio.gather(
            *(self._safe_search(text, limit) for text, limit in searches)
        )
        return dedupe_hits([hit for hits in results for hit in hits])

    async def _safe_search(self, text: str, limit: int) -> list[Document]:
        """One index query; a failure costs only its own hits."""
        try:
            return await self._searcher.search(text, limit=limit)
        except Exception as e:
            logger.warning("Forum search for %r failed, continuing without it: %s", text, e)
            return []

    async def _generate(
        self,
        query: str,
        documents: list[Document],
        context: PostContext,
        options: ReplyOptions,
    ) -> tuple[str, TokenUsage]:
        result = await self._invoker.complete(
            "discourse_reply",
            system=discourse_system_prompt(
                self._product,
                query,
                category=context.category,
                user_level=context.user_level,
                post_type=context.post_type,
                tone=options.tone,
                include_code_examples=options.include_code_examples,
            ),
            user=(
                "Based on the following documentation, please provide a comprehensive answer:\n\n"
                f"{build_context(documents)}"
            ),
            model=self._model,
            temperature=0.3,
            max_tokens=options.max_response_length or self._max_response_length,
        )
        answer = result.content or "Unable to generate answer"
        return answer, TokenUsage(
            prompt_tokens=result.usage.prompt_tokens,
            completion_tokens=result.usage.completion_tokens,
            total_tokens=result.usage.total_tokens,
        )
