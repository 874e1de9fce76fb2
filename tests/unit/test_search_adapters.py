"""Unit tests for the Algolia and GitHub search adapters (mocked HTTP transport)."""

import json

import httpx
import pytest

from search_backend.domain.exceptions import SearchProviderError
from search_backend.infrastructure.search import AlgoliaSearchClient, GitHubIssueSearcher


def _make_mock_transport(
    data: dict, status_code: int = 200, captured: list[httpx.Request] | None = None
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        return httpx.Response(status_code, json=data)

    return httpx.MockTransport(handler)


# ── Algolia ──


@pytest.mark.asyncio
async def test_algolia_maps_docsearch_hits():
    captured: list[httpx.Request] = []
    hits = {
        "hits": [
            {
                "objectID": "abc",
                "url": "https://docs.example.com/auth#login",
                "anchor": "login",
                "content": None,
                "hierarchy": {"lvl0": "Guides", "lvl1": "Authentication", "lvl2": None},
                "_snippetResult": {"content": {"value": "Call login() to authenticate"}},
            },
            {"objectID": "def", "title": "Release 2.0", "content": "New API", "date": "2024-05-01"},
        ]
    }
    client = AlgoliaSearchClient(
        "app",
        "key",
        "docs",
        http_client=httpx.AsyncClient(transport=_make_mock_transport(hits, captured=captured)),
    )

    documents = await client.search("login", limit=3)

    assert str(captured[0].url) == "https://app-dsn.algolia.net/1/indexes/docs/query"
    assert captured[0].headers["x-algolia-application-id"] == "app"
    assert json.loads(captured[0].content)["hitsPerPage"] == 3

    first, second = documents
    assert first.title == "Authentication"
    assert first.content == "Call login() to authenticate"
    assert first.hierarchy == ["Guides", "Authentication"]
    assert first.object_id == "abc"
    assert first.metadata == {"anchor": "login"}
    assert second.title == "Release 2.0"
    assert second.metadata["timestamp"] == "2024-05-01"


@pytest.mark.asyncio
async def test_algolia_error_status_raises():
    client = AlgoliaSearchClient(
        "app",
        "key",
        "docs",
        http_client=httpx.AsyncClient(transport=_make_mock_transport({"message": "Invalid API key"}, 403)),
    )

    with pytest.raises(SearchProviderError) as exc_info:
        await client.search("login")
    assert exc_info.value.status_code == 403


def test_algolia_enabled_requires_all_settings():
    assert AlgoliaSearchClient("app", "key", "docs").enabled is True
    assert AlgoliaSearchClient("app", "", "docs").enabled is False


# ── GitHub ──


@pytest.mark.asyncio
async def test_github_marks_closed_issues_resolved():
    captured: list[httpx.Request] = []
    items = {
        "items": [
            {
                "id": 1,
                "title": "Crash on start",
                "body": "Fixed by upgrading",
                "html_url": "https://github.com/acme/sdk/issues/1",
                "state": "closed",
                "closed_at": "2024-02-01T00:00:00Z",
                "labels": [{"name": "bug"}],
                "comments": 3,
            },
            {
                "id": 2,
                "title": "Feature request",
                "body": None,
                "html_url": "https://github.com/acme/sdk/issues/2",
                "state": "open",
                "updated_at": "2024-03-01T00:00:00Z",
            },
        ]
    }
    searcher = GitHubIssueSearcher(
        "acme/sdk",
        "gh-token",
        http_client=httpx.AsyncClient(transport=_make_mock_transport(items, captured=captured)),
    )

    documents = await searcher.search("crash", limit=5)

    request = captured[0]
    assert request.url.path == "/search/issues"
    assert request.url.params["q"] == "crash repo:acme/sdk is:issue"
    assert request.headers["authorization"] == "Bearer gh-token"

    resolved, still_open = documents
    assert resolved.metadata["type"] == "resolved"
    assert resolved.metadata["timestamp"] == "2024-02-01T00:00:00Z"
    assert resolved.tags == ["bug"]
    assert resolved.object_id == "1"
    assert still_open.metadata["type"] == "open"
    assert still_open.content == ""


@pytest.mark.asyncio
async def test_github_error_status_raises():
    searcher = GitHubIssueSearcher(
        "acme/sdk",
        http_client=httpx.AsyncClient(transport=_make_mock_transport({"message": "rate limited"}, 403)),
    )

    with pytest.raises(SearchProviderError):
        await searcher.search("crash")
