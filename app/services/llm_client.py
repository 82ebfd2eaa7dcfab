# app/services/llm_client.py
import logging
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from google.api_core import exceptions as gexc

from app.models import DispatchOutcome, MediaPart, PromptPayload, TextPart

logger = logging.getLogger(__name__)

# HTTP status -> (kind, error_type). Anything not listed is fatal.
STATUS_POLICY: Dict[int, tuple] = {
    400: ("fatal", "bad_request"),
    401: ("fatal", "auth"),
    403: ("fatal", "auth"),
    404: ("retryable", "not_found"),
    408: ("retryable", "timeout"),
    429: ("retryable", "rate_limited"),
    500: ("retryable", "unavailable"),
    502: ("retryable", "unavailable"),
    503: ("retryable", "unavailable"),
    504: ("retryable", "timeout"),
}

# finish reasons that mean the model refused for policy reasons
BLOCKING_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "RECITATION"}


def classify_status(model: str, status: int, detail: str = "") -> DispatchOutcome:
    kind, error_type = STATUS_POLICY.get(status, ("fatal", f"http_{status}"))
    if kind == "retryable":
        return DispatchOutcome.retryable(model, error_type, detail)
    return DispatchOutcome.fatal(model, error_type, detail)


def classify_exception(model: str, exc: BaseException) -> DispatchOutcome:
    """Map SDK / transport exceptions onto a DispatchOutcome."""
    detail = str(exc)[:300]
    if isinstance(exc, gexc.GoogleAPICallError) and exc.code is not None:
        return classify_status(model, int(exc.code), detail)
    if isinstance(exc, gexc.RetryError):
        return DispatchOutcome.retryable(model, "timeout", detail)
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return DispatchOutcome.retryable(model, "timeout" if isinstance(exc, TimeoutError) else "unavailable", detail)
    if isinstance(exc, genai.types.BlockedPromptException):
        return DispatchOutcome.fatal(model, "blocked", detail)
    if isinstance(exc, genai.types.StopCandidateException):
        return DispatchOutcome.fatal(model, "blocked", detail)
    return DispatchOutcome.fatal(model, "internal", detail)


def to_sdk_contents(payload: PromptPayload) -> List[Any]:
    contents: List[Any] = []
    for part in payload.parts:
        if isinstance(part, TextPart):
            contents.append(part.text)
        elif isinstance(part, MediaPart):
            contents.append({"mime_type": part.mime_type, "data": part.data})
    return contents


def _name(value: Any) -> str:
    return getattr(value, "name", None) or str(value or "")


def response_to_outcome(model: str, resp: Any) -> DispatchOutcome:
    """Normalize an SDK GenerateContentResponse into a DispatchOutcome."""
    feedback = getattr(resp, "prompt_feedback", None)
    block_reason = getattr(feedback, "block_reason", None)
    if block_reason and _name(block_reason) != "BLOCK_REASON_UNSPECIFIED":
        return DispatchOutcome.fatal(model, "blocked", f"prompt blocked: {_name(block_reason)}")

    candidates = list(getattr(resp, "candidates", None) or [])
    if not candidates:
        return DispatchOutcome.retryable(model, "empty", "no candidates returned")

    finish = _name(getattr(candidates[0], "finish_reason", ""))
    if finish in BLOCKING_FINISH_REASONS:
        return DispatchOutcome.fatal(model, "blocked", f"finish_reason={finish}")

    try:
        text = (resp.text or "").strip()
    except ValueError as e:
        return DispatchOutcome.retryable(model, "empty", str(e)[:300])
    if not text:
        return DispatchOutcome.retryable(model, "empty", "empty text")
    return DispatchOutcome.ok(model, text)


class GeminiClient:
    """Upstream boundary over the google-generativeai SDK."""

    def __init__(self, api_key: str):
        genai.configure(api_key=api_key)

    def generate(self, model: str, payload: PromptPayload, timeout: Optional[float] = None) -> DispatchOutcome:
        try:
            gm = genai.GenerativeModel(model, system_instruction=payload.system_instruction)
            options = {"timeout": timeout} if timeout else None
            resp = gm.generate_content(to_sdk_contents(payload), request_options=options)
        except Exception as e:
            outcome = classify_exception(model, e)
            logger.info("Gemini %s failed (%s): %s", model, outcome.error_type, outcome.detail)
            return outcome
        return response_to_outcome(model, resp)
