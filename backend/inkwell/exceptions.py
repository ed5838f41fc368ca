"""
Inkwell Backend: Error Code Taxonomy and Exception Hierarchy
=============================================================

What:  Stable envelope codes plus the exceptions that carry them.
How:   Every application exception stores an ErrorCode and a message.
       A single handler in main.py turns any AppError into an envelope;
       the code travels on the exception, so no type inspection is needed
       to pick the response.
Who:   Raised by services, the auth dependency and the store accessors.

Exception Hierarchy:
    AppError (base)
    ├── ParamInvalidError        → 14001
    ├── AuthError                → 13xxx
    │   ├── TokenMissingError
    │   ├── TokenInvalidError
    │   ├── TokenExpiredError
    │   └── TokenGenerationError
    ├── ResourceError            → 11xxx / 12xxx
    ├── PersistenceError         → 15xxx
    ├── ServiceUnavailableError  → 10002
    ├── RateLimitExceededError   → 10003
    └── InternalError            → 10001

Transport status: all of these are delivered with HTTP 200. Callers branch
on the envelope `code`, never on the status line.
"""

from enum import IntEnum
from typing import Any, Dict, Optional


class ErrorCode(IntEnum):
    SUCCESS = 200

    # ── Infrastructure ────────────────────────────────────────────────────
    INTERNAL_ERROR = 10001
    SERVICE_UNAVAILABLE = 10002
    TOO_MANY_REQUESTS = 10003

    # ── Users ─────────────────────────────────────────────────────────────
    USER_NOT_FOUND = 11001
    USERNAME_EXISTS = 11003
    EMAIL_EXISTS = 11004
    INVALID_PASSWORD = 11006
    USER_DISABLED = 11008
    CANNOT_DELETE_SELF = 11009

    # ── Articles ──────────────────────────────────────────────────────────
    ARTICLE_NOT_FOUND = 12001
    NO_PERMISSION = 12002

    # ── Authentication ────────────────────────────────────────────────────
    TOKEN_MISSING = 13001
    TOKEN_INVALID = 13002
    TOKEN_EXPIRED = 13003
    TOKEN_GEN_FAILED = 13004
    LOGIN_REQUIRED = 13005

    # ── Request input ─────────────────────────────────────────────────────
    PARAM_INVALID = 14001

    # ── Persistence ───────────────────────────────────────────────────────
    DB_QUERY_FAILED = 15001
    DB_INSERT_FAILED = 15002
    DB_UPDATE_FAILED = 15003
    DB_DELETE_FAILED = 15004

    @property
    def message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_DEFAULT_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.SUCCESS: "success",
    ErrorCode.INTERNAL_ERROR: "internal server error",
    ErrorCode.SERVICE_UNAVAILABLE: "service unavailable",
    ErrorCode.TOO_MANY_REQUESTS: "too many requests, please slow down",
    ErrorCode.USER_NOT_FOUND: "user not found",
    ErrorCode.USERNAME_EXISTS: "username already exists",
    ErrorCode.EMAIL_EXISTS: "email already registered",
    ErrorCode.INVALID_PASSWORD: "invalid username or password",
    ErrorCode.USER_DISABLED: "account is disabled",
    ErrorCode.CANNOT_DELETE_SELF: "cannot delete your own account",
    ErrorCode.ARTICLE_NOT_FOUND: "article not found",
    ErrorCode.NO_PERMISSION: "no permission for this resource",
    ErrorCode.TOKEN_MISSING: "authentication token missing",
    ErrorCode.TOKEN_INVALID: "authentication token invalid",
    ErrorCode.TOKEN_EXPIRED: "authentication token expired",
    ErrorCode.TOKEN_GEN_FAILED: "failed to generate token",
    ErrorCode.LOGIN_REQUIRED: "login required",
    ErrorCode.PARAM_INVALID: "invalid parameters",
    ErrorCode.DB_QUERY_FAILED: "database query failed",
    ErrorCode.DB_INSERT_FAILED: "database insert failed",
    ErrorCode.DB_UPDATE_FAILED: "database update failed",
    ErrorCode.DB_DELETE_FAILED: "database delete failed",
}


class AppError(Exception):
    """
    Base exception for all Inkwell application errors.

    Attributes:
        code:     Envelope code returned to the client
        message:  Client-facing description (canonical message unless overridden)
        context:  Debug info for the server log, never serialized
    """

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.code = ErrorCode(code if code is not None else self.default_code)
        self.message = message or self.code.message
        self.context = context or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={int(self.code)}, message={self.message!r})"


class ParamInvalidError(AppError):
    """Malformed, missing or out-of-range request input."""

    default_code = ErrorCode.PARAM_INVALID

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(AppError):
    """Token missing, invalid or expired, or login required."""

    default_code = ErrorCode.LOGIN_REQUIRED


class TokenMissingError(AuthError):
    default_code = ErrorCode.TOKEN_MISSING


class TokenInvalidError(AuthError):
    default_code = ErrorCode.TOKEN_INVALID


class TokenExpiredError(AuthError):
    default_code = ErrorCode.TOKEN_EXPIRED


class TokenGenerationError(AuthError):
    default_code = ErrorCode.TOKEN_GEN_FAILED


class ResourceError(AppError):
    """
    Domain outcome about a user or article: not found, already exists,
    no permission, cannot delete self. Always raised with an explicit code.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, context=context)


class PersistenceError(AppError):
    """
    A query, insert, update or delete failed against one of the stores.

    The driver exception is kept in `context` for the log; the client only
    sees the canonical message.
    """

    default_code = ErrorCode.DB_QUERY_FAILED

    def __init__(
        self,
        code: ErrorCode = ErrorCode.DB_QUERY_FAILED,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, context=context)


class ServiceUnavailableError(AppError):
    """A backing store was never initialized (or is disabled)."""

    default_code = ErrorCode.SERVICE_UNAVAILABLE

    def __init__(
        self,
        service: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["service"] = service
        super().__init__(message=message or f"{service} is not available", context=ctx)
        self.service = service


class RateLimitExceededError(AppError):
    default_code = ErrorCode.TOO_MANY_REQUESTS


class InternalError(AppError):
    default_code = ErrorCode.INTERNAL_ERROR
