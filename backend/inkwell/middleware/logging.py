"""
Inkwell Backend: Request Logging Middleware
============================================

What:  One access-log line per request.
How:   Records method, path, query, client address, user agent, status,
       latency and, when a handler failed, the error it reported on
       `request.state.error`.

Level selection:
    5xx                           → ERROR
    4xx, or a failure envelope    → WARNING
    everything else               → INFO

Business failures travel with HTTP 200, so the status line alone would log
them as INFO; the exception handler flags them through request.state.
Request bodies and auth headers are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from inkwell.middleware.client import client_ip, trusts_forwarded
from inkwell.middleware.request_id import request_id_var

logger = logging.getLogger("inkwell.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._log(request, 500, start_time)
            raise
        self._log(request, response.status_code, start_time)
        return response

    def _log(self, request: Request, status: int, start_time: float) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        error = getattr(request.state, "error", None)

        if status >= 500:
            level = logging.ERROR
        elif status >= 400 or error:
            level = logging.WARNING
        else:
            level = logging.INFO

        ip = client_ip(request, trusts_forwarded(request))
        rid = request_id_var.get("")
        query = request.url.query
        path = request.url.path + (f"?{query}" if query else "")

        logger.log(
            level,
            "%s %s %d %.1fms [%s] from %s%s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            ip,
            f" error={error}" if error else "",
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "query": query,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": ip,
                "user_agent": request.headers.get("User-Agent", ""),
            },
        )
