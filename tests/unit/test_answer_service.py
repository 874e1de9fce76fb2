"""Unit tests for the AnswerService pipeline."""

from collections.abc import AsyncIterator

import pytest

from search_backend.application.interfaces.chat_provider import ChatProvider
from search_backend.application.interfaces.document_searcher import DocumentSearcher
from search_backend.application.services import (
    AnswerService,
    AnswerServiceConfig,
    ModelInvoker,
    MultiSourceAggregator,
    QueryClassifier,
    ResponseValidator,
    SessionStore,
)
from search_backend.application.services.answer_service import (
    UNABLE_TO_ANSWER,
    fallback_follow_ups,
    follow_up_topic,
    naive_keywords,
)
from search_backend.domain.entities import (
    ChatCompletionResult,
    ChatMessage,
    Document,
    OutcomeStatus,
    QueryCategory,
    TokenUsage,
)
from search_backend.domain.exceptions import ChatProviderError, EntityNotFoundError


# ── Fakes ──


class FakeChatProvider(ChatProvider):
    """Replays scripted replies in order; an Exception entry is raised."""

    def __init__(self, replies: list[str | Exception] | None = None, *, stream_chunks: list[str] | None = None):
        self._replies = list(replies or [])
        self._stream_chunks = stream_chunks or []
        self.calls: list[dict] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        self.calls.append(
            {"messages": messages, "model": model, "temperature": temperature, "max_tokens": max_tokens}
        )
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ChatCompletionResult(
            model=model,
            content=reply,
            finish_reason="stop",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
            provider="fake",
        )

    async def stream(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        for chunk in self._stream_chunks:
            yield chunk


class FakeSearcher(DocumentSearcher):
    def __init__(self, documents: list[Document]):
        self._documents = documents
        self.queries: list[str] = []

    @property
    def source_name(self) -> str:
        return "documentation"

    async def search(self, query: str, *, limit: int = 5) -> list[Document]:
        self.queries.append(query)
        return self._documents[:limit]


CLASSIFICATION = '{"category": "how-to", "intent": "log in", "keywords": ["auth"], "complexity": "beginner"}'
AUTH_DOC = Document(title="Auth", content="Call login() to authenticate", url="https://docs.example.com/auth")


def _service(
    provider: FakeChatProvider,
    *,
    sessions: SessionStore | None = None,
    docs_searcher: DocumentSearcher | None = None,
    config: AnswerServiceConfig | None = None,
) -> AnswerService:
    invoker = ModelInvoker(provider)
    return AnswerService(
        invoker,
        classifier=QueryClassifier(invoker, model="classifier"),
        validator=ResponseValidator(),
        sessions=sessions or SessionStore(),
        aggregator=MultiSourceAggregator(invoker, model="aggregator"),
        docs_searcher=docs_searcher,
        config=config,
    )


# ── Helpers ──


def test_naive_keywords_keeps_query_first():
    assert naive_keywords("How do I authenticate users?", 5) == [
        "How do I authenticate users?",
        "how",
        "authenticate",
        "users?",
    ]
    assert naive_keywords("How do I authenticate users?", 2) == ["How do I authenticate users?", "how"]


def test_follow_up_topic_drops_question_words():
    assert follow_up_topic("How do I configure webhooks?") == "webhooks"
    assert follow_up_topic("how do I") == "this topic"


def test_fallback_follow_ups_use_category_templates():
    questions = fallback_follow_ups("What is a webhook?", QueryCategory.WHAT_IS, 2)
    assert questions == ["How do I get started with webhook?", "When should I use webhook?"]


# ── Keywords ──


@pytest.mark.asyncio
async def test_keywords_parsed_and_truncated():
    service = _service(FakeChatProvider(['["auth", "login", "sessions"]']))

    result = await service.generate_keywords("how to log in", max_keywords=2)

    assert result.keywords == ["auth", "login"]
    assert result.degraded is False
    assert result.usage.total_tokens == 15


@pytest.mark.asyncio
async def test_keywords_fall_back_on_malformed_output():
    service = _service(FakeChatProvider(["here are some keywords: auth, login"]))

    result = await service.generate_keywords("How do I authenticate users?")

    assert result.degraded is True
    assert result.keywords[0] == "How do I authenticate users?"
    assert "authenticate" in result.keywords


@pytest.mark.asyncio
async def test_keywords_fall_back_on_json_object():
    service = _service(FakeChatProvider(['{"keywords": ["auth"]}']))

    result = await service.generate_keywords("reset password")

    assert result.keywords == ["reset password", "reset", "password"]
    assert result.degraded is True


@pytest.mark.asyncio
async def test_keywords_model_failure_propagates():
    service = _service(FakeChatProvider([ChatProviderError("fake", 401, "bad key")]))

    with pytest.raises(ChatProviderError):
        await service.generate_keywords("anything")


# ── Answers ──


@pytest.mark.asyncio
async def test_generate_answer_builds_grounded_prompt():
    provider = FakeChatProvider([CLASSIFICATION, "Call login() to authenticate users."])
    service = _service(provider)

    result = await service.generate_answer("How do I authenticate users?", [AUTH_DOC])

    assert result.answer == "Call login() to authenticate users."
    assert result.query_analysis.category == QueryCategory.HOW_TO
    assert result.classification_status == OutcomeStatus.PRIMARY
    assert result.validation.is_valid is False
    assert result.enhancement.enabled is False
    assert result.enhancement.added_documents == 0

    answer_call = provider.calls[1]
    system, user = answer_call["messages"]
    assert "Answer structure (how-to)" in system
    assert "Confidence: HIGH" in system
    assert "## Document 1: Auth" in user
    assert "Call login() to authenticate" in user


@pytest.mark.asyncio
async def test_generate_answer_survives_classification_failure():
    provider = FakeChatProvider([ChatProviderError("fake", 500, "down"), "Some answer"])
    service = _service(provider)

    result = await service.generate_answer("How do I configure SSO?", [AUTH_DOC])

    assert result.answer == "Some answer"
    assert result.classification_status == OutcomeStatus.DEGRADED
    assert result.query_analysis.category == QueryCategory.CONFIGURATION


@pytest.mark.asyncio
async def test_generate_answer_model_failure_propagates():
    provider = FakeChatProvider([CLASSIFICATION, ChatProviderError("fake", 429, "slow down")])
    service = _service(provider)

    with pytest.raises(ChatProviderError) as exc_info:
        await service.generate_answer("q", [AUTH_DOC])
    assert exc_info.value.status_code == 429


@pytest.mark.asyncio
async def test_generate_answer_empty_content_uses_placeholder():
    service = _service(FakeChatProvider([CLASSIFICATION, ""]))

    result = await service.generate_answer("q", [AUTH_DOC])

    assert result.answer == UNABLE_TO_ANSWER


@pytest.mark.asyncio
async def test_generate_answer_caps_documents():
    provider = FakeChatProvider([CLASSIFICATION, "answer"])
    service = _service(provider, config=AnswerServiceConfig(max_documents=2))
    documents = [Document(title=f"Doc {i}", content="c", url=f"https://x/{i}") for i in range(5)]

    await service.generate_answer("q", documents)

    user = provider.calls[1]["messages"][-1].content
    assert "## Document 2: Doc 1" in user
    assert "Doc 2" not in user


@pytest.mark.asyncio
async def test_generate_answer_records_session_turns():
    sessions = SessionStore()
    session_id = sessions.create()
    provider = FakeChatProvider([CLASSIFICATION, "First answer", CLASSIFICATION, "Second answer"])
    service = _service(provider, sessions=sessions)

    await service.generate_answer("first question", [AUTH_DOC], session_id=session_id)
    result = await service.generate_answer("second question", [AUTH_DOC], session_id=session_id)

    assert result.session_id == session_id
    history = sessions.get_history(session_id)
    assert [t.query for t in history] == ["first question", "second question"]
    assert history[0].validation is not None

    second_prompt = provider.calls[3]["messages"][-1].content
    assert "Previous conversation:" in second_prompt
    assert "User: first question" in second_prompt


@pytest.mark.asyncio
async def test_generate_answer_unknown_session_fails_before_model_call():
    provider = FakeChatProvider([CLASSIFICATION, "answer"])
    service = _service(provider)

    with pytest.raises(EntityNotFoundError):
        await service.generate_answer("q", [AUTH_DOC], session_id="nope")
    assert provider.calls == []


# ── Multi-source ──


@pytest.mark.asyncio
async def test_multi_source_searches_docs_when_not_supplied():
    searcher = FakeSearcher([AUTH_DOC])
    provider = FakeChatProvider(["Fused [Source: Auth](https://docs.example.com/auth)\nConfidence: HIGH"])
    service = _service(provider, docs_searcher=searcher)

    outcome = await service.multi_source_search("login")

    assert searcher.queries == ["login"]
    assert outcome.result.documentation_count == 1
    assert outcome.validation.quality_metrics.has_citation is True


@pytest.mark.asyncio
async def test_multi_source_uses_supplied_docs_and_overrides():
    searcher = FakeSearcher([AUTH_DOC])
    provider = FakeChatProvider([ChatProviderError("fake", 500, "down")])
    service = _service(provider, docs_searcher=searcher)
    supplied = [Document(title="Given", content="c", url="https://x/given")]

    outcome = await service.multi_source_search(
        "login", documents=supplied, config_overrides={"weights": {"documentation": 0.9}}
    )

    assert searcher.queries == []
    assert outcome.result.degraded is True
    assert outcome.result.sources[0].weight == 0.9
    assert "Given" in outcome.result.answer


# ── Follow-ups ──


@pytest.mark.asyncio
async def test_follow_ups_from_model():
    service = _service(FakeChatProvider(['["A?", "B?", "C?", "D?"]']))

    outcome = await service.follow_up_questions("q", "a")

    assert outcome.status == OutcomeStatus.PRIMARY
    assert outcome.value == ["A?", "B?", "C?"]


@pytest.mark.asyncio
async def test_follow_ups_fall_back_to_templates():
    service = _service(FakeChatProvider([ChatProviderError("fake", 500, "down")]))

    outcome = await service.follow_up_questions("How do I configure webhooks?", "Use the settings page.")

    assert outcome.status == OutcomeStatus.DEGRADED
    assert len(outcome.value) == 3
    assert all("webhooks" in q for q in outcome.value)


@pytest.mark.asyncio
async def test_follow_ups_empty_list_falls_back():
    service = _service(FakeChatProvider(["[]"]))

    outcome = await service.follow_up_questions("What is a token?", "A token is...", max_questions=2)

    assert outcome.degraded
    assert len(outcome.value) == 2


# ── Passthroughs ──


@pytest.mark.asyncio
async def test_summarize_uses_default_prompt_and_model():
    provider = FakeChatProvider(["Short summary"])
    service = _service(provider)

    result = await service.summarize("auth", ["doc one", "doc two"])

    assert result.summary == "Short summary"
    assert result.model == "gpt-3.5-turbo"
    user = provider.calls[0]["messages"][-1].content
    assert "Document 1:\ndoc one" in user
    assert "Document 2:\ndoc two" in user


@pytest.mark.asyncio
async def test_chat_applies_defaults():
    provider = FakeChatProvider(["hi"])
    service = _service(provider)

    result = await service.chat([ChatMessage(role="user", content="hello")], model="gpt-4o-mini")

    assert result.content == "hi"
    assert provider.calls[0]["temperature"] == 0.5
    assert provider.calls[0]["max_tokens"] == 2000


@pytest.mark.asyncio
async def test_chat_stream_yields_chunks_and_logs_usage():
    chunks = ['data: {"choices":[{"delta":{"content":"Hi"}}]}', "data: [DONE]"]
    provider = FakeChatProvider(stream_chunks=chunks)
    service = _service(provider)

    received = [
        chunk
        async for chunk in service.chat_stream([ChatMessage(role="user", content="hello")], model="m")
    ]

    assert received == chunks
