"""
Inkwell Backend: Health, Readiness and Liveness Routes
=======================================================

What:  Probe endpoints for load balancers, orchestrators and monitoring.
Who:   Docker health checks, Kubernetes readiness/liveness probes.

Status codes:
    These are the only routes whose HTTP status reflects the outcome:
    /health answers 503 when the system is unhealthy (200 for healthy or
    degraded); /ready answers 503 unless every mandatory store is healthy.
    /live and /ping never touch a store.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from inkwell import __version__
from inkwell.auth.dependencies import get_health_aggregator
from inkwell.exceptions import ErrorCode
from inkwell.responses import failure, success
from inkwell.schemas.common import Envelope
from inkwell.services.health_service import HealthAggregator, OverallStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/ping", response_model=Envelope, summary="Connectivity check")
async def ping():
    return success({"time": _now()}, message="pong")


@router.get(
    "/health",
    response_model=Envelope,
    summary="Aggregated dependency health",
    responses={503: {"description": "A mandatory store is unhealthy", "model": Envelope}},
)
async def health(aggregator: HealthAggregator = Depends(get_health_aggregator)):
    overall, results = await aggregator.check_all()
    data = {
        "status": overall.value,
        "timestamp": _now(),
        "services": {name: r.to_dict() for name, r in results.items()},
        "version": __version__,
    }
    if overall == OverallStatus.UNHEALTHY:
        logger.warning("Health check unhealthy: %s", {n: r.status.value for n, r in results.items()})
        return failure(ErrorCode.SERVICE_UNAVAILABLE, data=data, status_code=503)
    return success(data)


@router.get(
    "/ready",
    response_model=Envelope,
    summary="Readiness probe",
    responses={503: {"description": "Not ready to receive traffic", "model": Envelope}},
)
async def ready(aggregator: HealthAggregator = Depends(get_health_aggregator)):
    is_ready, results = await aggregator.check_ready()
    data = {
        "status": "ready" if is_ready else "not_ready",
        "services": {name: r.status.value for name, r in results.items()},
        "timestamp": _now(),
    }
    if not is_ready:
        return failure(ErrorCode.SERVICE_UNAVAILABLE, data=data, status_code=503)
    return success(data)


@router.get("/live", response_model=Envelope, summary="Liveness probe")
async def live():
    return success({"status": "alive", "timestamp": _now()})
