"""
Inkwell Backend: Rate Limiting Middleware
==========================================

What:  Per-client request throttling keyed by client address.
How:   A fixed window per visitor, held in process memory:
       1. Unseen client              → count = 1, allow
       2. Quiet for more than window → count resets to 1, allow
       3. count already at the rate  → deny (last_seen is left untouched)
       4. otherwise                  → count += 1, refresh last_seen, allow

       A background task sweeps the table every `sweep_interval` seconds and
       evicts visitors not seen for `stale_after` seconds, so memory stays
       bounded by the number of recently active clients.

Because case 4 refreshes last_seen, a client sending steadily just under the
window keeps extending its window; the cap is on bursts, not on a sliding
average. Denied requests do not extend the window.

Production note:
    State is per process. Behind N workers or instances each one enforces
    its own quota, so the effective limit is N × rate. A shared store
    (Redis INCR with expiry) is the path to a global limit.

Rejected requests get the TOO_MANY_REQUESTS envelope with HTTP 200.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from inkwell.exceptions import RateLimitExceededError
from inkwell.middleware.client import client_ip
from inkwell.responses import from_error

logger = logging.getLogger(__name__)


@dataclass
class Visitor:
    last_seen: float
    count: int


class RateLimiter:
    """
    Thread-safe visitor table.

    Every `allow()` may mutate the table, so a single exclusive lock guards
    both reads and writes.
    """

    def __init__(
        self,
        rate: int,
        window: float = 1.0,
        stale_after: float = 180.0,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if rate < 1:
            raise ValueError("rate must be at least 1")
        self.rate = rate
        self.window = window
        self.stale_after = stale_after
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._visitors: Dict[str, Visitor] = {}
        self._lock = threading.Lock()
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    def allow(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            visitor = self._visitors.get(key)
            if visitor is None:
                self._visitors[key] = Visitor(last_seen=now, count=1)
                return True
            if now - visitor.last_seen > self.window:
                visitor.count = 1
                visitor.last_seen = now
                return True
            if visitor.count >= self.rate:
                return False
            visitor.count += 1
            visitor.last_seen = now
            return True

    def sweep(self) -> int:
        """Evict stale visitors; returns how many were removed."""
        cutoff = self._clock() - self.stale_after
        with self._lock:
            stale = [key for key, v in self._visitors.items() if v.last_seen < cutoff]
            for key in stale:
                del self._visitors[key]
        if stale:
            logger.debug("Rate limiter evicted %d stale visitors", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._visitors)

    # ── Background sweep ──────────────────────────────────────────────────

    def start(self) -> None:
        """Start the sweep task on the running event loop (idempotent)."""
        if self._task is not None and not self._task.done():
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._sweep_loop(), name="rate-limit-sweep")

    async def _sweep_loop(self) -> None:
        while True:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.sweep_interval)
                return
            except asyncio.TimeoutError:
                self.sweep()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self._stop_event = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies the application's RateLimiter to every request path."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        container = request.app.state.container
        key = client_ip(request, container.settings.trust_forwarded_headers)

        if not container.rate_limiter.allow(key):
            logger.warning(
                "Rate limit exceeded for %s on %s %s",
                key,
                request.method,
                request.url.path,
            )
            exc = RateLimitExceededError(context={"client": key})
            request.state.error = exc.message
            return from_error(exc)

        return await call_next(request)
