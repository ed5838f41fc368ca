"""
Inkwell Backend: Panic Recovery Middleware
===========================================

What:  Last line of defence for unhandled exceptions.
How:   Any exception escaping the inner stack is logged with its traceback
       (method, path, client address) and answered with HTTP 500 and the
       INTERNAL_ERROR envelope. The process keeps serving.

AppError never reaches this layer: the exception handlers registered in
main.py turn it into an envelope first.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from inkwell.exceptions import ErrorCode
from inkwell.middleware.client import client_ip, trusts_forwarded
from inkwell.responses import failure

logger = logging.getLogger(__name__)


class RecoveryMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "Unhandled exception on %s %s from %s: %s",
                request.method,
                request.url.path,
                client_ip(request, trusts_forwarded(request)),
                exc,
                exc_info=True,
            )
            return failure(ErrorCode.INTERNAL_ERROR, status_code=500)
