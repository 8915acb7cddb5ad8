import json
import logging
from typing import Any, Dict
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError
from relay.api.deps import get_relay
from relay.core.errors import RelayError, ValidationFailed
from relay.schemas.chat import ChatRequest, ChatResponse
from relay.services.chat_service import ChatRelay

router = APIRouter(tags=["chat"])
logger = logging.getLogger(__name__)

REQUIRED_FIELDS_ERROR = "chatbot_id and message are required"

# keep proxies (nginx & co) from buffering or caching the event stream
SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def error_response(status_code: int, message: str) -> JSONResponse:
    body = ChatResponse(ok=False, error=message).model_dump(exclude_none=True)
    return JSONResponse(body, status_code=status_code)


async def _read_json(request: Request) -> Dict[str, Any]:
    # a broken body is treated like an empty one; validation reports what is missing
    raw = await request.body()
    try:
        data = json.loads(raw) if raw else {}
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _parse(body: Dict[str, Any]) -> ChatRequest:
    try:
        req = ChatRequest.model_validate(body)
    except ValidationError as e:
        raise ValidationFailed(REQUIRED_FIELDS_ERROR) from e
    if not req.chatbot_id or not req.message:
        raise ValidationFailed(REQUIRED_FIELDS_ERROR)
    return req


@router.options("/chat")
async def chat_preflight() -> Response:
    return Response(status_code=204)


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(request: Request, relay: ChatRelay = Depends(get_relay)):
    try:
        req = _parse(await _read_json(request))
        logger.info("chat request for bot %s (stream=%s)", req.chatbot_id, req.stream)

        if req.stream:
            frames = await relay.open_stream(req)
            return StreamingResponse(frames, media_type="text/event-stream", headers=SSE_HEADERS)

        return await relay.reply(req, is_disconnected=request.is_disconnected)
    except RelayError as e:
        if e.status_code >= 500:
            logger.error("chat relay failed: %s", e.message)
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception("unhandled chat relay error: %s", e)
        return error_response(500, str(e))
