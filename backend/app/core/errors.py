# app/core/errors.py
"""
Error taxonomy shared by the services and the HTTP layer.

Every business-rule failure is raised as a PortalError subclass. The API layer
renders them as {"detail": {"code", "message", ...extra}} with the class's
status code, so the frontend can show an actionable message without
re-querying (e.g. required/current/shortage for funding errors).
"""
from decimal import Decimal
from typing import Any, Optional


class PortalError(Exception):
    """Base class for all typed portal errors."""

    status_code: int = 400
    code: str = "BAD_REQUEST"
    message: str = "Bad request"

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None, **extra: Any):
        self.message = message or self.message
        self.code = code or self.code
        self.extra = extra
        super().__init__(self.message)

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        for key, value in self.extra.items():
            detail[key] = float(value) if isinstance(value, Decimal) else value
        return detail


class Unauthorized(PortalError):
    """Missing, malformed or expired credential."""
    status_code = 401
    code = "AUTH_REQUIRED"
    message = "Authentication required"


class InvalidCredentials(Unauthorized):
    code = "AUTH_INVALID_CREDENTIALS"
    message = "Incorrect username or password"


class Forbidden(PortalError):
    """Valid credential, but wrong role or outside the caller's ownership scope."""
    status_code = 403
    code = "FORBIDDEN"
    message = "You are not allowed to perform this action"


class NotFound(PortalError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found"


class DuplicateUsername(PortalError):
    code = "USERNAME_EXISTS"
    message = "Username already exists"


class InsufficientBalance(PortalError):
    code = "INSUFFICIENT_BALANCE"
    message = "Insufficient wallet balance"

    def __init__(self, required: Decimal, current: Decimal):
        self.required = required
        self.current = current
        self.shortage = required - current
        super().__init__(required=required, current=current, shortage=self.shortage)


class ValidationError(PortalError):
    code = "VALIDATION_ERROR"
    message = "Invalid input"


class InternalError(PortalError):
    """The store is unavailable or failed in an unexpected way."""
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error"
