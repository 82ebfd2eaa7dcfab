# app/routers/chat.py
import ipaddress
import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from app.errors import ExhaustionFailure, FatalUpstreamFailure, InvalidRequest, MediaProcessingFailure
from app.models import ChatBody, ChatReply, ChatRequest
from app.services.media import check_size, normalize_image_async
from app.services.prompt import assemble_prompt
from app.services.sanitizer import sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

EMPTY_REPLY = "Please type a message (or attach an image) so I have something to answer."
TOO_LARGE_REPLY = "That image is too large. Please send a smaller one."
FAILED_REPLY = "Sorry, I couldn't come up with an answer right now. Please try again in a moment."
BUSY_REPLY = "I'm getting a lot of questions right now. Please try again in a minute."


def _valid_ip(value: Optional[str]) -> Optional[str]:
    try:
        return str(ipaddress.ip_address((value or "").strip()))
    except ValueError:
        return None


def caller_id(request: Request) -> str:
    """Client IP: first X-Forwarded-For hop, else the socket peer. Anything else is "unknown"."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return _valid_ip(forwarded.split(",")[0]) or "unknown"
    host = request.client.host if request.client else None
    return _valid_ip(host) or "unknown"


async def _read_upload(upload: UploadFile, max_bytes: int) -> bytes:
    # reject on the declared size first, then cap what we actually read
    if upload.size is not None:
        check_size(upload.size, max_bytes)
    data = await upload.read(max_bytes + 1)
    check_size(len(data), max_bytes)
    return data


async def parse_chat_request(request: Request, max_bytes: int) -> ChatRequest:
    """Multipart (message + image) or JSON ({"message": ...}) into a ChatRequest."""
    ctype = request.headers.get("content-type", "")
    text: Optional[str] = None
    image: Optional[bytes] = None

    if ctype.startswith("multipart/") or ctype.startswith("application/x-www-form-urlencoded"):
        # closing the form releases the spooled upload files
        async with request.form() as form:
            raw = form.get("message")
            text = raw if isinstance(raw, str) else None
            upload = form.get("image")
            if isinstance(upload, UploadFile) and upload.filename:
                image = await _read_upload(upload, max_bytes)
    else:
        try:
            body = ChatBody.model_validate(await request.json())
        except (ValueError, ValidationError):
            raise InvalidRequest("Body must be JSON like {\"message\": \"...\"}")
        text = body.message

    return ChatRequest(text=sanitize_text(text), image=image or None, caller=caller_id(request))


def _fail(status_code: int, reply: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ChatReply(reply=reply).model_dump(exclude_none=True))


async def _chat(request: Request):
    state = request.app.state
    settings = state.settings

    try:
        req = await parse_chat_request(request, settings.max_upload_bytes)

        media = None
        if req.image:
            try:
                media = await normalize_image_async(
                    req.image,
                    max_bytes=settings.max_upload_bytes,
                    max_width=settings.image_max_width,
                    quality=settings.image_quality,
                )
            except MediaProcessingFailure as e:
                logger.warning("Continuing without image from %s: %s", req.caller, e)

        payload = assemble_prompt(state.persona, req.text, media, knowledge=state.knowledge)
    except InvalidRequest as e:
        logger.info("Rejected request: %s", e)
        reply = TOO_LARGE_REPLY if e.status_code == 413 else EMPTY_REPLY
        return _fail(e.status_code, reply)

    try:
        outcome = await state.orchestrator.run(payload, caller=req.caller, should_abort=request.is_disconnected)
    except FatalUpstreamFailure as e:
        logger.error("Chat failed for %s: %s", req.caller, e)
        return _fail(502, FAILED_REPLY)
    except ExhaustionFailure as e:
        logger.error("Chat failed for %s: %s", req.caller, e)
        return _fail(503, BUSY_REPLY)

    return ChatReply(reply=outcome.text, model=outcome.model)


@router.post("/chat", response_model=ChatReply, response_model_exclude_none=True)
async def chat(request: Request):
    """Portfolio chatbot endpoint. Multipart (message, image) or JSON body."""
    return await _chat(request)


@router.post("/api/chat", response_model=ChatReply, response_model_exclude_none=True, include_in_schema=False)
async def api_chat(request: Request):
    return await _chat(request)
