# exceptions.py

from datetime import datetime
from typing import Optional


class LexumError(Exception):
    """Base class for every error raised by the study engine."""


class ValidationError(LexumError, ValueError):
    """Malformed caller input, rejected before any state is touched."""


class DependencyError(LexumError):
    """The relational store or the generative service failed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class NotFoundError(LexumError):
    """A requested row does not exist (or does not belong to the caller)."""


class EntitlementError(LexumError):
    """The caller's plan does not include the requested feature."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


class QuotaExceededError(LexumError):
    """Daily quota for a metered operation is used up."""

    def __init__(self, limit: int, used: int, plan: str, reset_at: datetime):
        super().__init__(f"Daily recommendation limit reached ({limit}/day on {plan} plan).")
        self.limit = limit
        self.used = used
        self.plan = plan
        self.reset_at = reset_at

    def to_detail(self) -> dict:
        return {
            "error": str(self),
            "errorCode": "REC_LIMIT_REACHED",
            "limit": self.limit,
            "used": self.used,
            "remaining": max(0, self.limit - self.used),
            "plan": self.plan,
            "resetAt": self.reset_at.isoformat(),
        }
