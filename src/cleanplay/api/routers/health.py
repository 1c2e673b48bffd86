# Hey future me - these are for Docker/Kubernetes probes and a quick look at the workers.
#
# Endpoints:
# - /health/live     → Liveness probe (process is up, no dependency checks)
# - /health/ready    → Readiness probe (Redis PING + DB SELECT 1), 503 when not ready
# - /health/workers  → Scheduler and consumer stats incl. the last CheckReport
#
# Docker HEALTHCHECK: curl -f http://localhost:8000/health/live || exit 1
"""Health check endpoints for Docker/Kubernetes probes."""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cleanplay.infrastructure.lifecycle import AppContext

logger = logging.getLogger(__name__)

router = APIRouter()


class LivenessStatus(BaseModel):
    """Simple liveness probe response."""

    status: str = Field(description="alive")
    timestamp: str = Field(description="ISO timestamp")


class ReadinessStatus(BaseModel):
    """Readiness probe response."""

    status: str = Field(description="ready or not_ready")
    timestamp: str = Field(description="ISO timestamp")
    database: bool = Field(description="Database answers SELECT 1")
    redis: bool = Field(description="Redis answers PING")


class WorkersStatus(BaseModel):
    """Worker stats."""

    timestamp: str = Field(description="ISO timestamp")
    playback_check: dict[str, Any] = Field(description="Tick scheduler stats")
    profanity_check: dict[str, Any] = Field(description="Queue consumer stats")


def _get_context(request: Request) -> AppContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application context not initialized",
        )
    return context


@router.get("/live", response_model=LivenessStatus)
async def liveness_probe() -> LivenessStatus:
    """Liveness probe: 200 as long as the process is running."""
    return LivenessStatus(status="alive", timestamp=datetime.now(UTC).isoformat())


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_probe(request: Request) -> JSONResponse:
    """Readiness probe: 200 when DB and Redis are reachable, 503 otherwise."""
    context = _get_context(request)

    db_ok = False
    try:
        db_ok = await context.database.ping()
    except Exception as e:
        logger.warning("Readiness: database check failed: %s", e)

    redis_ok = False
    try:
        redis_ok = bool(await context.redis.ping())
    except Exception as e:
        logger.warning("Readiness: redis check failed: %s", e)

    is_ready = db_ok and redis_ok
    response = ReadinessStatus(
        status="ready" if is_ready else "not_ready",
        timestamp=datetime.now(UTC).isoformat(),
        database=db_ok,
        redis=redis_ok,
    )
    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=status_code)


@router.get("/workers", response_model=WorkersStatus)
async def workers_status(request: Request) -> WorkersStatus:
    """Scheduler and consumer stats, including the last tick's CheckReport."""
    context = _get_context(request)
    return WorkersStatus(
        timestamp=datetime.now(UTC).isoformat(),
        playback_check=context.playback_worker.get_stats(),
        profanity_check=context.profanity_worker.get_stats(),
    )
