"""Shared schema building blocks."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from search_backend.domain.entities import Document, TokenUsage


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenUsageResponse(BaseModel):
    """Token usage in the provider's own (snake_case) shape."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_domain(cls, usage: TokenUsage) -> "TokenUsageResponse":
        return cls(
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        )


class DocumentSchema(CamelModel):
    """A pre-fetched document supplied by the caller's search client."""

    title: str = ""
    url: str = ""
    content: str = ""
    hierarchy: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    object_id: str | None = Field(default=None, alias="objectID")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("hierarchy", mode="before")
    @classmethod
    def _flatten_hierarchy(cls, value: Any) -> list[str]:
        # DocSearch indexes send {"lvl0": ..., "lvl1": ...}
        if isinstance(value, dict):
            return [str(v) for _, v in sorted(value.items()) if v]
        return value or []

    @field_validator("content", "title", "url", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_domain(self) -> Document:
        return Document(
            title=self.title,
            content=self.content,
            url=self.url,
            hierarchy=list(self.hierarchy),
            tags=list(self.tags),
            object_id=self.object_id,
            metadata=dict(self.metadata),
        )
