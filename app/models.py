from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from app.errors import FatalUpstreamFailure, InvalidRequest, RetryableUpstreamFailure

# ---------------------------------------------------------------- pipeline types

@dataclass(frozen=True)
class ChatRequest:
    text: str = ""
    image: Optional[bytes] = None
    caller: str = "unknown"


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class MediaPart:
    data: bytes
    mime_type: str = "image/jpeg"


ContentPart = Union[TextPart, MediaPart]


@dataclass(frozen=True)
class PromptPayload:
    system_instruction: str
    parts: Tuple[ContentPart, ...]

    def __post_init__(self):
        if not self.parts:
            raise InvalidRequest("empty prompt")


OutcomeStatus = Literal["success", "retryable", "fatal"]


@dataclass(frozen=True)
class DispatchOutcome:
    status: OutcomeStatus
    model: str
    text: Optional[str] = None
    error_type: Optional[str] = None   # rate_limited | not_found | unavailable | timeout | bad_request | auth | blocked | ...
    detail: Optional[str] = None

    @classmethod
    def ok(cls, model: str, text: str) -> "DispatchOutcome":
        return cls(status="success", model=model, text=text)

    @classmethod
    def retryable(cls, model: str, error_type: str, detail: str = "") -> "DispatchOutcome":
        return cls(status="retryable", model=model, error_type=error_type, detail=detail)

    @classmethod
    def fatal(cls, model: str, error_type: str, detail: str = "") -> "DispatchOutcome":
        return cls(status="fatal", model=model, error_type=error_type, detail=detail)

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    def raise_for_status(self) -> None:
        if self.status == "retryable":
            raise RetryableUpstreamFailure(self)
        if self.status == "fatal":
            raise FatalUpstreamFailure(self)


def _log_field(value: str) -> str:
    # one token per field: no delimiter, no whitespace, no line breaks
    cleaned = "".join("_" if c == "|" or c.isspace() else c for c in str(value))
    return cleaned or "-"


@dataclass(frozen=True)
class UsageRecord:
    caller: str
    model: str
    status: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def day(self) -> str:
        return self.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%d")

    def to_line(self) -> str:
        ts = self.timestamp.astimezone(timezone.utc).isoformat()
        fields = [_log_field(v) for v in (self.caller, self.model, self.status)]
        return " | ".join([ts, *fields]) + "\n"

# ---------------------------------------------------------------- API schemas

class ChatBody(BaseModel):
    message: Optional[str] = Field(None, description="User's message text")


class ChatReply(BaseModel):
    reply: str
    model: Optional[str] = None


class StatusReply(BaseModel):
    status: str
    models: List[str]
