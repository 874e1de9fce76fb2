"""Domain entities for retrieved documents and multi-source results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .chat_message import TokenUsage


class SourceType(str, Enum):
    """Where a multi-source result came from."""

    DOCUMENTATION = "documentation"
    GITHUB = "github"
    BLOG = "blog"
    CHANGELOG = "changelog"


@dataclass
class Document:
    """A document retrieved by an external search index.

    Caller-owned and read-only here: this service only arranges
    documents into prompts, it never fetches or indexes them itself
    (search adapters aside).
    """

    title: str
    content: str
    url: str = ""
    hierarchy: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    object_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def dedupe_key(self) -> str:
        return self.url or self.title


@dataclass
class MultiSourceResult:
    """A document tagged with its source type and a sort weight.

    ``metadata["weight"]`` is a priority in [0, 1] used only for ordering.
    ``metadata["type"] == "resolved"`` marks a closed issue-tracker item.
    """

    title: str
    content: str
    url: str
    source: SourceType
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def weight(self) -> float:
        return float(self.metadata.get("weight", 0.0))

    @property
    def is_resolved(self) -> bool:
        return self.metadata.get("type") == "resolved"

    @classmethod
    def from_document(
        cls, document: Document, source: SourceType, **metadata: Any
    ) -> "MultiSourceResult":
        return cls(
            title=document.title,
            content=document.content,
            url=document.url,
            source=source,
            metadata={**document.metadata, **metadata},
        )


@dataclass
class AggregatedResult:
    """Fused answer built from several source types."""

    answer: str
    sources: list[MultiSourceResult]
    confidence: int
    source_count: int
    resolved_github_count: int
    documentation_count: int
    counts_by_source: dict[str, int] = field(default_factory=dict)
    usage: TokenUsage = field(default_factory=TokenUsage)
    degraded: bool = False
    error: str | None = None
