# app/errors.py
from typing import List, Optional


class ChatError(Exception):
    """Base class for every error the chat pipeline raises."""


class ConfigurationError(ChatError):
    pass


class InvalidRequest(ChatError):
    """Rejected before dispatch: empty prompt or oversized upload."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class MediaProcessingFailure(ChatError):
    """Corrupt or unsupported image. Callers continue text-only."""


class UpstreamFailure(ChatError):
    def __init__(self, outcome):
        super().__init__(f"{outcome.model}: {outcome.error_type} {outcome.detail or ''}".strip())
        self.outcome = outcome


class RetryableUpstreamFailure(UpstreamFailure):
    pass


class FatalUpstreamFailure(UpstreamFailure):
    pass


class ExhaustionFailure(ChatError):
    """Every candidate failed retryably, or the caller went away."""

    def __init__(self, attempts: List, cancelled: bool = False):
        self.attempts = attempts
        self.cancelled = cancelled
        self.last: Optional[object] = attempts[-1] if attempts else None
        if cancelled:
            msg = f"cancelled after {len(attempts)} attempt(s)"
        else:
            msg = f"all {len(attempts)} candidate(s) failed"
        if self.last is not None:
            msg += f"; last error: {self.last.model} {self.last.error_type}"
        super().__init__(msg)
