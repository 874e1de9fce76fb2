"""GitHub issue search — closed issues count as resolved community answers."""

import logging
from typing import Any

import httpx

from search_backend.application.interfaces.document_searcher import DocumentSearcher
from search_backend.domain.entities import Document
from search_backend.domain.exceptions import SearchProviderError

logger = logging.getLogger(__name__)

MAX_BODY_CHARS = 2000


class GitHubIssueSearcher(DocumentSearcher):
    """Infrastructure adapter — searches issues of one repository."""

    def __init__(
        self,
        repo: str,
        token: str = "",
        *,
        api_url: str = "https://api.github.com",
        http_client: httpx.AsyncClient | None = None,
    ):
        self._repo = repo
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._http_client = http_client

    @property
    def source_name(self) -> str:
        return "github"

    @property
    def enabled(self) -> bool:
        return bool(self._repo)

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=30.0)

    async def search(self, query: str, *, limit: int = 5) -> list[Document]:
        params = {
            "q": f"{query} repo:{self._repo} is:issue",
            "sort": "updated",
            "order": "desc",
            "per_page": limit,
        }
        client = await self._get_client()
        should_close = self._http_client is None

        try:
            response = await client.get(
                f"{self._api_url}/search/issues", headers=self._get_headers(), params=params
            )
            if response.status_code != 200:
                raise SearchProviderError(
                    provider="github",
                    message=response.text[:500],
                    status_code=response.status_code,
                )
            items = response.json().get("items", [])
        except httpx.HTTPError as e:
            raise SearchProviderError(provider="github", message=str(e) or type(e).__name__) from e
        finally:
            if should_close:
                await client.aclose()

        logger.debug("GitHub issues %r → %d item(s)", query, len(items))
        return [self._to_document(item) for item in items[:limit]]

    @staticmethod
    def _to_document(item: dict[str, Any]) -> Document:
        state = item.get("state", "open")
        return Document(
            title=item.get("title", ""),
            content=(item.get("body") or "")[:MAX_BODY_CHARS],
            url=item.get("html_url", ""),
            tags=[label.get("name", "") for label in item.get("labels") or [] if label.get("name")],
            object_id=str(item["id"]) if "id" in item else None,
            metadata={
                "type": "resolved" if state == "closed" else "open",
                "state": state,
                "timestamp": item.get("closed_at") or item.get("updated_at"),
                "comments": item.get("comments", 0),
            },
        )
