"""Recursive context enhancement.

Asks a (usually fine-tuned) model which related topics would help answer
the query, searches the documentation for them and merges the new
documents in, repeating up to a fixed depth. Any failure leaves the
original documents untouched.
"""

import logging

from search_backend.application.interfaces.document_searcher import DocumentSearcher
from search_backend.application.services.llm_json import loads_string_list
from search_backend.application.services.model_invoker import ModelInvoker
from search_backend.application.services.prompt_templates import related_topics_prompt
from search_backend.domain.entities import Document, StageOutcome

logger = logging.getLogger(__name__)

DOCS_PER_TOPIC = 2


def merge_documents(initial: list[Document], additional: list[Document]) -> list[Document]:
    """Concatenate, keeping the first occurrence of each url (or title)."""
    seen: set[str] = set()
    merged: list[Document] = []
    for doc in [*initial, *additional]:
        key = doc.dedupe_key
        if key not in seen:
            seen.add(key)
            merged.append(doc)
    return merged


class ContextEnhancer:
    def __init__(
        self,
        invoker: ModelInvoker,
        searcher: DocumentSearcher,
        *,
        model: str,
        enabled: bool = False,
        max_depth: int = 2,
    ):
        self._invoker = invoker
        self._searcher = searcher
        self._model = model
        self._enabled = enabled
        self._max_depth = max_depth

    @property
    def enabled(self) -> bool:
        return self._enabled and bool(self._model) and self._searcher.enabled

    async def enhance(self, query: str, documents: list[Document]) -> StageOutcome[list[Document]]:
        if not self.enabled or not documents:
            return StageOutcome.primary(documents)
        try:
            enhanced = await self._enhance(query, documents, depth=0)
        except Exception as e:
            logger.warning("Context enhancement failed, using initial documents: %s", e)
            return StageOutcome.fallback(documents, e)

        logger.info(
            "Context enhanced: %d initial + %d new documents",
            len(documents),
            len(enhanced) - len(documents),
        )
        return StageOutcome.primary(enhanced)

    async def _enhance(self, query: str, documents: list[Document], depth: int) -> list[Document]:
        if depth >= self._max_depth:
            return documents

        topics = await self._related_topics(query, documents)
        if not topics:
            return documents

        additional: list[Document] = []
        for topic in topics:
            additional.extend(await self._searcher.search(topic, limit=DOCS_PER_TOPIC))

        if depth < self._max_depth - 1 and additional:
            additional = await self._enhance(query, additional, depth + 1)
        return merge_documents(documents, additional)

    async def _related_topics(self, query: str, documents: list[Document]) -> list[str]:
        result = await self._invoker.complete(
            "related_topics",
            system=None,
            user=related_topics_prompt(query, [(d.title, d.content) for d in documents]),
            model=self._model,
            temperature=0.3,
            max_tokens=100,
        )
        try:
            return loads_string_list(result.content)[:3]
        except ValueError:
            logger.debug("Related-topic output was not a JSON array: %r", result.content[:200])
            return []
