"""Legacy passthrough endpoints — raw chat completion and summarization."""

import json

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from search_backend.application.schemas import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    SummarizeRequest,
    SummarizeResponse,
    TokenUsageResponse,
)
from search_backend.application.services import AnswerService
from search_backend.domain.exceptions import ChatProviderError
from search_backend.infrastructure.dependencies import get_answer_service

router = APIRouter(tags=["Chat Completions"])


@router.post("/chat/completions", response_model=ChatCompletionResponse)
async def chat_completion(
    request: ChatCompletionRequest,
    service: AnswerService = Depends(get_answer_service),
):
    """OpenAI-compatible completion. ``stream: true`` switches to SSE."""
    messages = [m.to_domain() for m in request.messages]

    if request.stream:
        async def event_generator():
            try:
                async for chunk in service.chat_stream(
                    messages,
                    model=request.model,
                    temperature=request.temperature,
                    max_tokens=request.max_tokens,
                ):
                    yield f"{chunk}\n\n"
            except ChatProviderError as e:
                error_data = json.dumps({"error": {"code": e.status_code, "message": e.message}})
                yield f"data: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    result = await service.chat(
        messages,
        model=request.model,
        temperature=request.temperature,
        max_tokens=request.max_tokens,
    )
    return ChatCompletionResponse.from_domain(result)


@router.post("/summarize", response_model=SummarizeResponse)
async def summarize(
    body: SummarizeRequest,
    service: AnswerService = Depends(get_answer_service),
) -> SummarizeResponse:
    result = await service.summarize(
        body.query,
        body.content,
        model=body.model,
        max_tokens=body.max_tokens,
        system_prompt=body.system_prompt,
    )
    return SummarizeResponse(
        summary=result.summary,
        model=result.model,
        usage=TokenUsageResponse.from_domain(result.usage),
    )
