"""Port for anything that turns a query into ranked documents."""

from abc import ABC, abstractmethod

from search_backend.domain.entities import Document


class DocumentSearcher(ABC):
    """A search index, issue tracker or feed that can be queried by text."""

    @property
    @abstractmethod
    def source_name(self) -> str:
        ...

    @property
    def enabled(self) -> bool:
        return True

    @abstractmethod
    async def search(self, query: str, *, limit: int = 5) -> list[Document]:
        """Return up to ``limit`` documents for ``query``, best first.

        Raises:
            SearchProviderError: If the backend call fails.
        """
        ...


class NullSearcher(DocumentSearcher):
    """Stand-in for a source that is not configured; always empty."""

    def __init__(self, source_name: str = "none"):
        self._source_name = source_name

    @property
    def source_name(self) -> str:
        return self._source_name

    @property
    def enabled(self) -> bool:
        return False

    async def search(self, query: str, *, limit: int = 5) -> list[Document]:
        return []
