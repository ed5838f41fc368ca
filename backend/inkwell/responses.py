"""
Inkwell Backend: Envelope Response Builders
============================================

What:  Turns handler outcomes into `{code, message, data?}` JSON responses.
How:   Business outcomes always travel with HTTP 200; only the health and
       readiness endpoints (and transport-level 404/405/500) pass an explicit
       status code.
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from inkwell.exceptions import AppError, ErrorCode


def envelope_body(code: int, message: str, data: Any = None) -> dict:
    body = {"code": int(code), "message": message}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return body


def success(data: Any = None, message: Optional[str] = None) -> JSONResponse:
    """Success envelope; the default message can be overridden per call."""
    return JSONResponse(
        status_code=200,
        content=envelope_body(ErrorCode.SUCCESS, message or ErrorCode.SUCCESS.message, data),
    )


def failure(
    code: ErrorCode,
    message: Optional[str] = None,
    data: Any = None,
    status_code: int = 200,
) -> JSONResponse:
    """Failure envelope with the canonical message unless one is supplied."""
    return JSONResponse(
        status_code=status_code,
        content=envelope_body(code, message or code.message, data),
    )


def from_error(exc: AppError) -> JSONResponse:
    return failure(exc.code, exc.message)
