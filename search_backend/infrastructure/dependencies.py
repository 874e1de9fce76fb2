"""FastAPI dependency injection — wires infrastructure to the application layer.

All long-lived objects (shared httpx client, session store, rate-limit
counters, forum cache) are built once into a ServiceContainer stored on
``app.state``; request handlers reach them only through the getters below.
"""

import logging
import secrets
from dataclasses import dataclass

import httpx
from fastapi import Depends, Request

from search_backend.application.interfaces.chat_provider import ChatProvider
from search_backend.application.interfaces.document_searcher import (
    DocumentSearcher,
    NullSearcher,
)
from search_backend.application.services import (
    AggregationConfig,
    AnswerService,
    AnswerServiceConfig,
    ContextEnhancer,
    DiscourseService,
    LLMUsageLogger,
    ModelInvoker,
    MultiSourceAggregator,
    QueryClassifier,
    RateLimiter,
    ResponseCache,
    ResponseValidator,
    SessionStore,
)
from search_backend.application.services.rate_limiter import client_key
from search_backend.config import Settings, get_settings
from search_backend.domain.entities import SourceType
from search_backend.domain.exceptions import AccessDeniedError
from search_backend.infrastructure.llm import OpenAIChatClient
from search_backend.infrastructure.search import AlgoliaSearchClient, GitHubIssueSearcher
from search_backend.infrastructure.security import RECAPTCHA_HEADER, RecaptchaVerifier

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 120.0


@dataclass
class ServiceContainer:
    """Everything request handlers need, constructed once per app."""

    settings: Settings
    http_client: httpx.AsyncClient
    provider: ChatProvider
    usage_logger: LLMUsageLogger
    sessions: SessionStore
    answers: AnswerService
    discourse: DiscourseService
    rate_limiter: RateLimiter
    discourse_rate_limiter: RateLimiter
    recaptcha: RecaptchaVerifier
    owns_http_client: bool = True

    async def aclose(self) -> None:
        if self.owns_http_client:
            await self.http_client.aclose()


def _algolia(settings: Settings, index: str, source: SourceType, client: httpx.AsyncClient) -> DocumentSearcher:
    if not (settings.algolia_app_id and settings.algolia_api_key and index):
        return NullSearcher(source.value)
    return AlgoliaSearchClient(
        app_id=settings.algolia_app_id,
        api_key=settings.algolia_api_key,
        index_name=index,
        source_name=source.value,
        http_client=client,
    )


def build_container(
    settings: Settings | None = None,
    *,
    provider: ChatProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
    docs_searcher: DocumentSearcher | None = None,
    github_searcher: DocumentSearcher | None = None,
    blog_searcher: DocumentSearcher | None = None,
    changelog_searcher: DocumentSearcher | None = None,
) -> ServiceContainer:
    """Build the service graph from settings; any collaborator can be injected."""
    settings = settings or get_settings()
    owns_http_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)

    provider = provider or OpenAIChatClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        http_client=client,
    )
    docs_searcher = docs_searcher or _algolia(
        settings, settings.algolia_index_name, SourceType.DOCUMENTATION, client
    )
    blog_searcher = blog_searcher or _algolia(
        settings, settings.algolia_blog_index, SourceType.BLOG, client
    )
    changelog_searcher = changelog_searcher or _algolia(
        settings, settings.algolia_changelog_index, SourceType.CHANGELOG, client
    )
    if github_searcher is None:
        github_searcher = (
            GitHubIssueSearcher(
                repo=settings.github_repo,
                token=settings.github_token,
                api_url=settings.github_api_url,
                http_client=client,
            )
            if settings.github_repo
            else NullSearcher(SourceType.GITHUB.value)
        )

    usage_logger = LLMUsageLogger()
    invoker = ModelInvoker(provider, usage_logger)
    sessions = SessionStore(
        ttl_seconds=settings.session_ttl_seconds,
        max_turns=settings.session_max_turns,
        sweep_interval_seconds=settings.session_sweep_interval_seconds,
    )
    aggregator = MultiSourceAggregator(
        invoker,
        model=settings.answer_model,
        config=AggregationConfig(
            weights={
                SourceType.DOCUMENTATION: settings.weight_documentation,
                SourceType.GITHUB: settings.weight_github,
                SourceType.BLOG: settings.weight_blog,
                SourceType.CHANGELOG: settings.weight_changelog,
            },
            resolved_bonus=settings.resolved_issue_bonus,
        ),
        github_searcher=github_searcher,
        blog_searcher=blog_searcher,
        changelog_searcher=changelog_searcher,
        max_tokens=settings.answer_max_tokens,
        temperature=settings.model_temperature,
    )
    answers = AnswerService(
        invoker,
        classifier=QueryClassifier(invoker, model=settings.classification_model),
        validator=ResponseValidator(),
        sessions=sessions,
        aggregator=aggregator,
        enhancer=ContextEnhancer(
            invoker,
            docs_searcher,
            model=settings.fine_tuned_model_id,
            enabled=settings.enable_recursive_search,
            max_depth=settings.max_recursion_depth,
        ),
        docs_searcher=docs_searcher,
        config=AnswerServiceConfig(
            keyword_model=settings.keyword_model,
            answer_model=settings.answer_model,
            summary_model=settings.summary_model,
            follow_up_model=settings.classification_model,
            keyword_max_tokens=settings.keyword_max_tokens,
            answer_max_tokens=settings.answer_max_tokens,
            temperature=settings.model_temperature,
            max_keywords=settings.max_keywords,
            max_documents=settings.max_documents,
        ),
    )
    discourse = DiscourseService(
        invoker,
        docs_searcher,
        model=settings.discourse_model,
        product_name=settings.discourse_product_name,
        max_response_length=settings.discourse_max_response_length,
        cache=ResponseCache(ttl_seconds=settings.discourse_cache_ttl),
        cache_enabled=settings.enable_cache,
    )

    if not docs_searcher.enabled:
        logger.info("No documentation index configured; search-backed features use caller documents only.")

    return ServiceContainer(
        settings=settings,
        http_client=client,
        provider=provider,
        usage_logger=usage_logger,
        sessions=sessions,
        answers=answers,
        discourse=discourse,
        rate_limiter=RateLimiter(
            settings.rate_limit,
            settings.rate_limit_window_seconds,
            enabled=settings.enable_rate_limit,
        ),
        discourse_rate_limiter=RateLimiter(
            settings.discourse_rate_limit,
            60,
            enabled=settings.enable_rate_limit,
            message="Discourse API rate limit exceeded",
        ),
        recaptcha=RecaptchaVerifier(
            settings.recaptcha_secret_key,
            score_threshold=settings.recaptcha_score_threshold,
            allowed_actions=settings.recaptcha_action_list,
            verify_url=settings.recaptcha_verify_url,
            http_client=client,
        ),
        owns_http_client=owns_http_client,
    )


# ── Request-scoped getters ──────────────────────────────────────────


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_answer_service(container: ServiceContainer = Depends(get_container)) -> AnswerService:
    return container.answers


def get_session_store(container: ServiceContainer = Depends(get_container)) -> SessionStore:
    return container.sessions


def get_discourse_service(container: ServiceContainer = Depends(get_container)) -> DiscourseService:
    return container.discourse


def _peer(request: Request) -> str | None:
    return request.client.host if request.client else None


async def enforce_rate_limit(
    request: Request, container: ServiceContainer = Depends(get_container)
) -> None:
    """Per-client request budget for the public API."""
    container.rate_limiter.hit(client_key(request.headers, _peer(request)))


async def verify_recaptcha(
    request: Request, container: ServiceContainer = Depends(get_container)
) -> None:
    await container.recaptcha.verify(request.headers.get(RECAPTCHA_HEADER))


async def require_discourse_token(
    request: Request, container: ServiceContainer = Depends(get_container)
) -> None:
    """Bearer-token check for forum integrations, then their own rate limit."""
    expected = container.settings.discourse_api_key
    header = request.headers.get("authorization", "")
    token = header[7:] if header.startswith("Bearer ") else ""
    if not expected or not token or not secrets.compare_digest(token.encode(), expected.encode()):
        raise AccessDeniedError(401, "Unauthorized")
    container.discourse_rate_limiter.hit(client_key(request.headers, _peer(request)))
