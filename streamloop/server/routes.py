"""Streaming, text, embeddings and health routes."""

import json
import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from ..errors import StreamLoopError
from .app import require_app
from .models import (
    EmbeddingsRequest,
    EmbeddingsResponseModel,
    GenerateRequest,
    TextResponseModel,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _sse(payload: dict, event: Optional[str] = None) -> str:
    data = json.dumps(payload, ensure_ascii=False, default=str)
    if event:
        return f"event: {event}\ndata: {data}\n\n"
    return f"data: {data}\n\n"


def _generation_kwargs(req: GenerateRequest) -> dict:
    return {
        "system_prompt": req.system_prompt,
        "tool_choice": req.tool_choice,
        "max_steps": req.max_steps,
        "temperature": req.temperature,
        "max_tokens": req.max_tokens,
        "top_p": req.top_p,
        "provider_options": req.provider_options,
    }


@router.post("/stream")
async def stream(req: GenerateRequest):
    app = require_app()
    events = app.stream(req.prompt, **_generation_kwargs(req)).events()

    # Pull the first event here so a failed handshake maps to an HTTP status
    try:
        first = await events.__anext__()
    except StreamLoopError:
        await events.aclose()
        raise

    async def event_generator():
        try:
            yield _sse(first.to_dict())
            async for event in events:
                yield _sse(event.to_dict())
        except StreamLoopError as e:
            logger.error(f"Stream aborted: {e}")
            yield _sse({"error": e.to_dict()}, event="error")
        finally:
            await events.aclose()
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
    )


@router.post("/text", response_model=TextResponseModel)
async def text(req: GenerateRequest):
    app = require_app()
    response = await app.text(req.prompt, **_generation_kwargs(req))
    return TextResponseModel(**response.to_dict())


@router.post("/embeddings", response_model=EmbeddingsResponseModel)
async def embeddings(req: EmbeddingsRequest):
    app = require_app()
    response = await app.embed(req.input, model=req.model, provider_options=req.provider_options)
    return EmbeddingsResponseModel(**response.to_dict())


@router.get("/health")
async def health():
    return {"status": "ok"}
