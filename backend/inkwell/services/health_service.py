"""
Inkwell Backend: Health Aggregation
====================================

What:  Probes every backing store and folds the results into one status.
How:   Each probe runs independently under its own timeout; probes run
       concurrently, so one hung store costs at most one timeout.
Who:   /health and /ready route handlers.

Probe outcomes:
    healthy    round trip succeeded
    unhealthy  the store is configured but the round trip failed or timed out
    unknown    the store handle was never initialized (not configured)

Aggregation precedence:
    1. a mandatory probe (database, redis) is unhealthy  → unhealthy
    2. any probe is unhealthy or unknown                 → degraded
    3. otherwise                                         → healthy

Readiness is stricter: every mandatory probe must be healthy.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence

from sqlalchemy import text

from inkwell.stores import Stores

logger = logging.getLogger(__name__)


class ProbeStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class OverallStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ProbeResult:
    status: ProbeStatus
    message: str
    latency_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "message": self.message,
            "latency": f"{self.latency_ms:.2f}ms",
        }


class Probe(ABC):
    """
    A single dependency check. Subclasses report whether their handle is
    initialized and how to ping it; timing and error capture live here.
    """

    name: str = ""

    def __init__(self, mandatory: bool, timeout: float = 5.0):
        self.mandatory = mandatory
        self.timeout = timeout

    @abstractmethod
    def configured(self) -> bool:
        ...

    @abstractmethod
    async def ping(self) -> None:
        ...

    async def check(self) -> ProbeResult:
        if not self.configured():
            return ProbeResult(ProbeStatus.UNKNOWN, f"{self.name} not initialized")
        start = time.perf_counter()
        try:
            await asyncio.wait_for(self.ping(), timeout=self.timeout)
        except asyncio.TimeoutError:
            latency = (time.perf_counter() - start) * 1000
            logger.warning("Health probe %s timed out after %.1fs", self.name, self.timeout)
            return ProbeResult(ProbeStatus.UNHEALTHY, f"timeout after {self.timeout:g}s", latency)
        except Exception as e:
            latency = (time.perf_counter() - start) * 1000
            logger.warning("Health probe %s failed: %s", self.name, e)
            return ProbeResult(ProbeStatus.UNHEALTHY, str(e) or type(e).__name__, latency)
        latency = (time.perf_counter() - start) * 1000
        return ProbeResult(ProbeStatus.HEALTHY, "ok", latency)


# ── Store probes ──────────────────────────────────────────────────────────


class DatabaseProbe(Probe):
    name = "database"

    def __init__(self, stores: Stores, timeout: float = 5.0):
        super().__init__(mandatory=True, timeout=timeout)
        self._stores = stores

    def configured(self) -> bool:
        return self._stores.engine is not None

    async def ping(self) -> None:
        async with self._stores.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))


class MongoProbe(Probe):
    name = "mongodb"

    def __init__(self, stores: Stores, timeout: float = 5.0):
        super().__init__(mandatory=False, timeout=timeout)
        self._stores = stores

    def configured(self) -> bool:
        return self._stores.mongo_client is not None

    async def ping(self) -> None:
        await self._stores.mongo_client.admin.command("ping")


class RedisProbe(Probe):
    name = "redis"

    def __init__(self, stores: Stores, timeout: float = 5.0):
        super().__init__(mandatory=True, timeout=timeout)
        self._stores = stores

    def configured(self) -> bool:
        return self._stores.redis is not None

    async def ping(self) -> None:
        await self._stores.redis.ping()


# ── Aggregation ───────────────────────────────────────────────────────────


def aggregate_status(results: Dict[str, ProbeResult], mandatory: Sequence[str]) -> OverallStatus:
    for name in mandatory:
        result = results.get(name)
        if result is not None and result.status == ProbeStatus.UNHEALTHY:
            return OverallStatus.UNHEALTHY
    if any(r.status != ProbeStatus.HEALTHY for r in results.values()):
        return OverallStatus.DEGRADED
    return OverallStatus.HEALTHY


class HealthAggregator:
    def __init__(self, probes: List[Probe]):
        self.probes = probes

    @property
    def mandatory(self) -> List[str]:
        return [p.name for p in self.probes if p.mandatory]

    async def _run(self, probes: List[Probe]) -> Dict[str, ProbeResult]:
        results = await asyncio.gather(*(p.check() for p in probes))
        return {p.name: r for p, r in zip(probes, results)}

    async def check_all(self) -> tuple[OverallStatus, Dict[str, ProbeResult]]:
        results = await self._run(self.probes)
        return aggregate_status(results, self.mandatory), results

    async def check_ready(self) -> tuple[bool, Dict[str, ProbeResult]]:
        """Only mandatory probes are consulted; each must be healthy."""
        results = await self._run([p for p in self.probes if p.mandatory])
        ready = all(r.status == ProbeStatus.HEALTHY for r in results.values())
        return ready, results

    @classmethod
    def for_stores(cls, stores: Stores, timeout: float = 5.0) -> "HealthAggregator":
        return cls(
            [
                DatabaseProbe(stores, timeout),
                MongoProbe(stores, timeout),
                RedisProbe(stores, timeout),
            ]
        )
