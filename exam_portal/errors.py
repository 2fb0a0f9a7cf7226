"""
errors.py — Error taxonomy for the portal core
===============================================
Every failure the core raises derives from PortalError and carries a
machine ``reason`` plus the HTTP status the API layer maps it to.
Authentication failures share one public message so callers cannot tell
which check rejected them.
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Optional


class RejectReason(str, Enum):
    MISSING_FIELDS = "missing_fields"
    RATE_LIMITED = "rate_limited"
    INVALID_CREDENTIALS = "invalid_credentials"
    ALREADY_USED = "already_used"
    EXAM_INACTIVE = "exam_inactive"
    FORBIDDEN = "forbidden"


class PortalError(Exception):
    status_code: int = 500
    reason: Optional[str] = None

    def __init__(self, message: str, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason

    @property
    def public_message(self) -> str:
        return self.message


class ValidationError(PortalError):
    status_code = 400
    reason = "validation"


class NotFoundError(PortalError):
    status_code = 404
    reason = "not_found"


class ConflictError(PortalError):
    status_code = 409
    reason = "conflict"


class RateLimitedError(PortalError):
    status_code = 429
    reason = RejectReason.RATE_LIMITED.value

    def __init__(self, retry_after_seconds: float) -> None:
        self.retry_after_minutes = max(1, math.ceil(retry_after_seconds / 60))
        super().__init__(
            f"Too many login attempts. Please try again in {self.retry_after_minutes} minutes."
        )


class AuthenticationError(PortalError):
    status_code = 401

    def __init__(self, reason: RejectReason) -> None:
        super().__init__(f"Authentication rejected: {reason.value}", reason=reason.value)
        if reason is RejectReason.FORBIDDEN:
            self.status_code = 403

    @property
    def public_message(self) -> str:
        if self.reason == RejectReason.FORBIDDEN.value:
            return "Access denied."
        return "Invalid or inactive credentials."


class PersistenceError(PortalError):
    status_code = 500
    reason = "persistence"

    @property
    def public_message(self) -> str:
        return "Something went wrong."
