"""Pydantic schemas for the community-forum responder.

The forum plugin speaks snake_case, so these models keep Python field
names on the wire.
"""

from typing import Literal

from pydantic import BaseModel, Field

from search_backend.application.services.discourse_service import (
    ForumPost,
    ForumReply,
    ForumUser,
    ReplyOptions,
)
from search_backend.domain.entities import ConfidenceLevel


class DiscourseUserSchema(BaseModel):
    username: str
    trust_level: int = Field(default=0, ge=0, le=4)


class DiscoursePostSchema(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    url: str = ""
    category: str = Field(..., min_length=1)
    user: DiscourseUserSchema

    def to_domain(self) -> ForumPost:
        return ForumPost(
            title=self.title,
            content=self.content,
            category=self.category,
            url=self.url,
            user=ForumUser(username=self.user.username, trust_level=self.user.trust_level),
        )


class DiscourseContextSchema(BaseModel):
    tags: list[str] = []
    previous_replies_count: int | None = None
    urgency: Literal["low", "medium", "high"] | None = None


class DiscourseConfigSchema(BaseModel):
    max_response_length: int | None = Field(default=None, gt=0)
    tone: Literal["helpful", "professional", "friendly"] = "helpful"
    include_code_examples: bool = True

    def to_domain(self) -> ReplyOptions:
        return ReplyOptions(
            max_response_length=self.max_response_length,
            tone=self.tone,
            include_code_examples=self.include_code_examples,
        )


class DiscourseRequest(BaseModel):
    post: DiscoursePostSchema
    context: DiscourseContextSchema | None = None
    config: DiscourseConfigSchema | None = None


class DiscourseReplySchema(BaseModel):
    content: str
    confidence: ConfidenceLevel
    should_post: bool
    reasoning: str


class DiscourseSourceSchema(BaseModel):
    title: str
    url: str
    relevance_score: float


class DiscourseMetadataSchema(BaseModel):
    keywords_used: list[str]
    documents_analyzed: int
    processing_time_ms: int
    query_type: str
    quality_score: float
    cached: bool = False


class DiscourseResponse(BaseModel):
    success: bool = True
    response: DiscourseReplySchema
    sources: list[DiscourseSourceSchema]
    metadata: DiscourseMetadataSchema

    @classmethod
    def from_domain(cls, reply: ForumReply) -> "DiscourseResponse":
        return cls(
            response=DiscourseReplySchema(
                content=reply.content,
                confidence=reply.assessment.confidence,
                should_post=reply.assessment.should_post,
                reasoning=reply.assessment.reasoning,
            ),
            sources=[
                DiscourseSourceSchema(
                    title=s.title, url=s.url, relevance_score=s.relevance_score
                )
                for s in reply.sources
            ],
            metadata=DiscourseMetadataSchema(
                keywords_used=reply.keywords_used,
                documents_analyzed=reply.documents_analyzed,
                processing_time_ms=reply.processing_time_ms,
                query_type=reply.query_type,
                quality_score=round(reply.assessment.quality_score, 2),
                cached=reply.cached,
            ),
        )
