"""Tests for the health endpoints."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI

from cleanplay.api import api_router


def _context(db_ok: bool = True, redis_ok: bool = True) -> MagicMock:
    context = MagicMock()
    context.database.ping = AsyncMock(return_value=db_ok)
    context.redis.ping = AsyncMock(return_value=redis_ok)
    context.playback_worker.get_stats.return_value = {"tick_count": 7, "last_report": None}
    context.profanity_worker.get_stats.return_value = {"processed": 3}
    return context


# Hey future me - a bare app with just the router, NOT create_app(). The real lifespan
# would connect to Redis and start both workers.
def _app(context: MagicMock | None) -> FastAPI:
    app = FastAPI()
    app.include_router(api_router)
    if context is not None:
        app.state.context = context
    return app


async def _get(app: FastAPI, path: str) -> httpx.Response:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(path)


class TestHealthEndpoints:
    """Test liveness, readiness and worker stats."""

    @pytest.mark.asyncio
    async def test_live(self) -> None:
        """Liveness needs no context at all."""
        response = await _get(_app(None), "/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    @pytest.mark.asyncio
    async def test_ready(self) -> None:
        """Ready when both dependencies answer."""
        response = await _get(_app(_context()), "/health/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["database"] is True
        assert body["redis"] is True

    @pytest.mark.asyncio
    async def test_not_ready_when_redis_is_down(self) -> None:
        """A failing PING makes the probe return 503."""
        context = _context()
        context.redis.ping.side_effect = ConnectionError("refused")

        response = await _get(_app(context), "/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["database"] is True
        assert body["redis"] is False

    @pytest.mark.asyncio
    async def test_not_ready_when_database_is_down(self) -> None:
        """The database answering False is not ready either."""
        response = await _get(_app(_context(db_ok=False)), "/health/ready")

        assert response.status_code == 503
        assert response.json()["database"] is False

    @pytest.mark.asyncio
    async def test_ready_without_context(self) -> None:
        """Before startup finished there's nothing to check."""
        response = await _get(_app(None), "/health/ready")

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_workers(self) -> None:
        """Both workers' stats are exposed."""
        response = await _get(_app(_context()), "/health/workers")

        assert response.status_code == 200
        body = response.json()
        assert body["playback_check"]["tick_count"] == 7
        assert body["profanity_check"]["processed"] == 3
