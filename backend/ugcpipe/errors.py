"""Error taxonomy shared by admission, orchestration and the API layer."""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Denial and failure kinds surfaced to callers."""

    NOT_FOUND = "not_found"
    NOT_APPROVED = "not_approved"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    TRIAL_EXHAUSTED = "trial_exhausted"
    VALIDATION = "validation_error"
    PROVIDER_TIMEOUT = "provider_timeout"
    PROVIDER_FAILURE = "provider_failure"
    UPLOAD_FAILURE = "upload_failure"
    UNKNOWN = "unknown"


class GenerationError(Exception):
    """Typed failure carrying a kind, a human message and optional details.

    Raised before any job exists (validation, admission, missing references)
    and inside the per-scene boundary (upload failures). The orchestrator
    converts it into a result object; it never escapes a generation call.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return f"GenerationError({self.kind.value!r}, {self.message!r})"


class InvalidTransition(Exception):
    """Raised when a job or scene status change would move backwards."""
