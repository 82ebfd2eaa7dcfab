import base64
from typing import Any, Dict, Optional

import requests

from app.models import DispatchOutcome, MediaPart, PromptPayload, TextPart
from app.services.llm_client import BLOCKING_FINISH_REASONS, classify_status

BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


def to_rest_body(payload: PromptPayload) -> Dict[str, Any]:
    parts = []
    for part in payload.parts:
        if isinstance(part, TextPart):
            parts.append({"text": part.text})
        elif isinstance(part, MediaPart):
            parts.append({"inline_data": {
                "mime_type": part.mime_type,
                "data": base64.b64encode(part.data).decode("ascii"),
            }})
    return {
        "system_instruction": {"parts": [{"text": payload.system_instruction}]},
        "contents": [{"role": "user", "parts": parts}],
    }


def body_to_outcome(model: str, data: Dict[str, Any]) -> DispatchOutcome:
    block = (data.get("promptFeedback") or {}).get("blockReason")
    if block:
        return DispatchOutcome.fatal(model, "blocked", f"prompt blocked: {block}")
    candidates = data.get("candidates") or []
    if not candidates:
        return DispatchOutcome.retryable(model, "empty", "no candidates returned")
    first = candidates[0]
    if first.get("finishReason") in BLOCKING_FINISH_REASONS:
        return DispatchOutcome.fatal(model, "blocked", f"finishReason={first['finishReason']}")
    parts = (first.get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts).strip()
    if not text:
        return DispatchOutcome.retryable(model, "empty", "empty text")
    return DispatchOutcome.ok(model, text)


class GeminiRestClient:
    """Same contract as GeminiClient, talking to the REST API with requests."""

    def __init__(self, api_key: str, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.session = session or requests.Session()

    def generate(self, model: str, payload: PromptPayload, timeout: Optional[float] = 30) -> DispatchOutcome:
        url = f"{BASE_URL}/{model}:generateContent"
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        try:
            r = self.session.post(url, json=to_rest_body(payload), headers=headers, timeout=timeout)
        except requests.Timeout as e:
            return DispatchOutcome.retryable(model, "timeout", str(e)[:300])
        except requests.ConnectionError as e:
            return DispatchOutcome.retryable(model, "unavailable", str(e)[:300])

        if r.status_code != 200:
            return classify_status(model, r.status_code, r.text[:300])
        try:
            data = r.json()
        except ValueError:
            return DispatchOutcome.retryable(model, "invalid_output", r.text[:300])
        return body_to_outcome(model, data)
