"""Pydantic v2 schemas for the legacy chat-completion and summarize passthroughs."""

import time

from pydantic import BaseModel, Field

from search_backend.application.schemas.common import CamelModel, TokenUsageResponse
from search_backend.domain.entities import ChatCompletionResult, ChatMessage


class ChatMessageSchema(BaseModel):
    role: str = Field(..., pattern=r"^(system|user|assistant)$")
    content: str

    def to_domain(self) -> ChatMessage:
        return ChatMessage(role=self.role, content=self.content)


class ChatCompletionRequest(BaseModel):
    """OpenAI-compatible request body (snake_case, as clients send it)."""

    model: str = Field(..., min_length=1, description="Model identifier, e.g. 'gpt-4o-mini'")
    messages: list[ChatMessageSchema] = Field(..., min_length=1)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    stream: bool = Field(default=False, description="Enable SSE streaming")


class ChatChoiceMessage(BaseModel):
    role: str = "assistant"
    content: str


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatChoiceMessage
    finish_reason: str


class ChatCompletionResponse(BaseModel):
    """OpenAI-compatible response body."""

    id: str = ""
    object: str = "chat.completion"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str
    choices: list[ChatChoice]
    usage: TokenUsageResponse

    @classmethod
    def from_domain(cls, result: ChatCompletionResult) -> "ChatCompletionResponse":
        return cls(
            id=result.response_id,
            model=result.model,
            choices=[
                ChatChoice(
                    message=ChatChoiceMessage(content=result.content),
                    finish_reason=result.finish_reason,
                )
            ],
            usage=TokenUsageResponse.from_domain(result.usage),
        )


class SummarizeRequest(CamelModel):
    query: str = Field(..., min_length=1)
    content: list[str] = Field(..., min_length=1)
    model: str | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    system_prompt: str | None = None


class SummarizeResponse(CamelModel):
    summary: str
    model: str
    usage: TokenUsageResponse
