"""Unit tests for multi-source merging, ordering and fused answers."""

from collections.abc import AsyncIterator

import pytest

from search_backend.application.interfaces.chat_provider import ChatProvider
from search_backend.application.interfaces.document_searcher import DocumentSearcher
from search_backend.application.services.model_invoker import ModelInvoker
from search_backend.application.services.multi_source_aggregator import (
    FALLBACK_CONFIDENCE,
    AggregationConfig,
    MultiSourceAggregator,
    SourceResults,
    confidence_score,
    merge_sources,
    sort_key,
)
from search_backend.domain.entities import (
    ChatCompletionResult,
    ChatMessage,
    Document,
    MultiSourceResult,
    SourceType,
    TokenUsage,
)
from search_backend.domain.exceptions import ChatProviderError, SearchProviderError


# ── Fakes ──


class FakeChatProvider(ChatProvider):
    """Replays scripted replies in order; an Exception entry is raised."""

    def __init__(self, replies: list[str | Exception]):
        self._replies = list(replies)
        self.calls: list[list[ChatMessage]] = []

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
        self.calls.append(messages)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ChatCompletionResult(
            model=model,
            content=reply,
            finish_reason="stop",
            usage=TokenUsage(prompt_tokens=100, completion_tokens=50, total_tokens=150),
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
        yield "data: [DONE]"


class FakeSearcher(DocumentSearcher):
    def __init__(self, name: str, documents: list[Document] | None = None, *, error: Exception | None = None):
        self._name = name
        self._documents = documents or []
        self._error = error

    @property
    def source_name(self) -> str:
        return self._name

    async def search(self, query: str, *, limit: int = 5) -> list[Document]:
        if self._error:
            raise self._error
        return self._documents[:limit]


def _doc(title: str, **metadata) -> Document:
    return Document(title=title, content=f"{title} content", url=f"https://example.com/{title}", metadata=metadata)


# ── Ordering ──


def test_resolved_issue_outranks_heavier_source():
    """0.3 + 0.1 resolved bonus beats a 0.35 blog weight."""
    config = AggregationConfig(
        weights={
            SourceType.DOCUMENTATION: 0.5,
            SourceType.GITHUB: 0.3,
            SourceType.BLOG: 0.35,
            SourceType.CHANGELOG: 0.05,
        }
    )
    merged = merge_sources(
        SourceResults(
            github=[_doc("open-issue", type="open"), _doc("closed-issue", type="resolved")],
            blog=[_doc("blog-post")],
        ),
        config,
    )

    assert [r.title for r in merged] == ["closed-issue", "blog-post", "open-issue"]


def test_default_priority_order():
    merged = merge_sources(
        SourceResults(
            documentation=[_doc("doc")],
            github=[_doc("issue", type="resolved")],
            blog=[_doc("blog")],
            changelog=[_doc("changelog")],
        ),
        AggregationConfig(),
    )

    assert [r.source for r in merged] == [
        SourceType.DOCUMENTATION,
        SourceType.GITHUB,
        SourceType.BLOG,
        SourceType.CHANGELOG,
    ]
    assert merged[0].weight == 0.5


def test_ties_keep_input_order():
    merged = merge_sources(
        SourceResults(documentation=[_doc("first"), _doc("second"), _doc("third")]),
        AggregationConfig(),
    )
    assert [r.title for r in merged] == ["first", "second", "third"]


def test_sort_key_adds_bonus_only_for_resolved():
    resolved = MultiSourceResult("t", "c", "u", SourceType.GITHUB, {"weight": 0.3, "type": "resolved"})
    still_open = MultiSourceResult("t", "c", "u", SourceType.GITHUB, {"weight": 0.3, "type": "open"})

    assert sort_key(resolved) == pytest.approx(0.4)
    assert sort_key(still_open) == pytest.approx(0.3)


# ── Confidence ──


def test_confidence_formula():
    config = AggregationConfig()
    sources = merge_sources(
        SourceResults(
            documentation=[_doc("d1"), _doc("d2")],
            github=[_doc("issue", type="resolved")],
            blog=[_doc("blog")],
        ),
        config,
    )
    # 4 sources * 10 + 1 resolved * 15 + 2 docs * 20
    assert confidence_score(sources, config) == 95


def test_confidence_is_capped_at_100():
    config = AggregationConfig()
    sources = merge_sources(
        SourceResults(documentation=[_doc(f"d{i}") for i in range(5)]), config
    )
    assert confidence_score(sources, config) == 100


def test_with_overrides_applies_known_keys_only():
    config = AggregationConfig().with_overrides(
        {"weights": {"blog": 0.9, "bogus": 1}, "resolvedBonus": 0.2, "maxResultsPerSource": 2}
    )

    assert config.weight_for(SourceType.BLOG) == 0.9
    assert config.weight_for(SourceType.DOCUMENTATION) == 0.5
    assert config.resolved_bonus == 0.2
    assert config.results_per_source == 2


# ── Aggregation ──


@pytest.mark.asyncio
async def test_aggregate_success():
    provider = FakeChatProvider(["Fused answer [Source: d1](https://example.com/d1)"])
    aggregator = MultiSourceAggregator(ModelInvoker(provider), model="test-model")

    result = await aggregator.aggregate(
        "how do I log in",
        [_doc("d1")],
        [_doc("issue", type="resolved")],
        [],
        [],
    )

    assert result.answer.startswith("Fused answer")
    assert result.degraded is False
    assert result.source_count == 2
    assert result.resolved_github_count == 1
    assert result.documentation_count == 1
    assert result.counts_by_source == {"documentation": 1, "github": 1, "blog": 0, "changelog": 0}
    assert result.confidence == 2 * 10 + 15 + 20
    assert result.usage.total_tokens == 150

    prompt = provider.calls[0][-1].content
    assert "## Source 1: d1" in prompt
    assert "Status: resolved" in prompt


@pytest.mark.asyncio
async def test_aggregate_failure_builds_fallback_digest():
    provider = FakeChatProvider([ChatProviderError("fake", 500, "down")])
    aggregator = MultiSourceAggregator(ModelInvoker(provider), model="test-model")
    long_doc = Document(title="Long", content="x" * 500, url="https://example.com/long")

    result = await aggregator.aggregate(
        "q",
        [long_doc, _doc("second"), _doc("third")],
        [],
        [_doc("fourth")],
        [],
    )

    assert result.degraded is True
    assert result.confidence == FALLBACK_CONFIDENCE
    assert "down" in result.error
    assert "**Long** (documentation)" in result.answer
    assert "x" * 200 in result.answer
    assert "x" * 201 not in result.answer
    assert "fourth" not in result.answer


@pytest.mark.asyncio
async def test_aggregate_failure_with_no_sources():
    provider = FakeChatProvider([ChatProviderError("fake", 500, "down")])
    aggregator = MultiSourceAggregator(ModelInvoker(provider), model="test-model")

    result = await aggregator.aggregate("q", [], [], [], [])

    assert result.degraded is True
    assert result.source_count == 0
    assert result.answer


@pytest.mark.asyncio
async def test_search_all_sources_tolerates_failing_source():
    aggregator = MultiSourceAggregator(
        ModelInvoker(FakeChatProvider([])),
        model="test-model",
        github_searcher=FakeSearcher("github", error=SearchProviderError("github", "rate limited", 403)),
        blog_searcher=FakeSearcher("blog", [_doc("post")]),
    )

    github, blog, changelog = await aggregator.search_all_sources("q")

    assert github == []
    assert [d.title for d in blog] == ["post"]
    assert changelog == []
