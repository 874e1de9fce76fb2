"""Algolia index search over the REST API.

Works for DocSearch-style documentation indexes (``hierarchy.lvl0..lvl6``)
as well as flat blog/changelog indexes that carry a ``title`` attribute.
"""

import logging
from typing import Any

import httpx

from search_backend.application.interfaces.document_searcher import DocumentSearcher
from search_backend.domain.entities import Document
from search_backend.domain.exceptions import SearchProviderError

logger = logging.getLogger(__name__)

_HIERARCHY_LEVELS = tuple(f"lvl{i}" for i in range(7))
_TIMESTAMP_FIELDS = ("date", "published_at", "updated_at", "timestamp")


class AlgoliaSearchClient(DocumentSearcher):
    """Infrastructure adapter — queries one Algolia index."""

    def __init__(
        self,
        app_id: str,
        api_key: str,
        index_name: str,
        *,
        source_name: str = "documentation",
        http_client: httpx.AsyncClient | None = None,
    ):
        self._app_id = app_id
        self._api_key = api_key
        self._index_name = index_name
        self._source_name = source_name
        self._http_client = http_client

    @property
    def source_name(self) -> str:
        return self._source_name

    @property
    def enabled(self) -> bool:
        return bool(self._app_id and self._api_key and self._index_name)

    def _get_headers(self) -> dict[str, str]:
        return {
            "X-Algolia-Application-Id": self._app_id,
            "X-Algolia-API-Key": self._api_key,
            "Content-Type": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=30.0)

    async def search(self, query: str, *, limit: int = 5) -> list[Document]:
        url = f"https://{self._app_id}-dsn.algolia.net/1/indexes/{self._index_name}/query"
        payload: dict[str, Any] = {
            "query": query,
            "hitsPerPage": limit,
            "attributesToRetrieve": ["title", "content", "hierarchy", "url", "anchor", "date"],
            "attributesToSnippet": ["content:150"],
            "removeWordsIfNoResults": "allOptional",
            "queryType": "prefixLast",
            "typoTolerance": "min",
            "ignorePlurals": True,
            "removeStopWords": True,
        }

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            response = await client.post(url, headers=self._get_headers(), json=payload)
            if response.status_code != 200:
                raise SearchProviderError(
                    provider="algolia",
                    message=response.text[:500],
                    status_code=response.status_code,
                )
            hits = response.json().get("hits", [])
        except httpx.HTTPError as e:
            raise SearchProviderError(provider="algolia", message=str(e) or type(e).__name__) from e
        finally:
            if should_close:
                await client.aclose()

        logger.debug("Algolia [%s] %r → %d hit(s)", self._index_name, query, len(hits))
        return [self._to_document(hit) for hit in hits]

    @staticmethod
    def _to_document(hit: dict[str, Any]) -> Document:
        raw_hierarchy = hit.get("hierarchy") or {}
        hierarchy = [raw_hierarchy[lvl] for lvl in _HIERARCHY_LEVELS if raw_hierarchy.get(lvl)]
        title = (
            hit.get("title")
            or raw_hierarchy.get("lvl1")
            or raw_hierarchy.get("lvl0")
            or "Documentation"
        )
        content = hit.get("content") or (
            ((hit.get("_snippetResult") or {}).get("content") or {}).get("value", "")
        )
        metadata: dict[str, Any] = {}
        if hit.get("anchor"):
            metadata["anchor"] = hit["anchor"]
        for name in _TIMESTAMP_FIELDS:
            if hit.get(name):
                metadata["timestamp"] = hit[name]
                break
        return Document(
            title=title,
            content=content or "",
            url=hit.get("url", "") or "",
            hierarchy=hierarchy,
            object_id=hit.get("objectID"),
            metadata=metadata,
        )
