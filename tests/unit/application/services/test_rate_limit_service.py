"""Tests for the fixed-window rate limiter."""

from datetime import timedelta

import pytest

from cleanplay.application.services.rate_limit_service import (
    Allowed,
    NeedToWait,
    RateLimitAction,
    RateLimitActions,
    RateLimitService,
)
from cleanplay.domain.exceptions import RateLimitExceededError
from cleanplay.infrastructure.cache import RedisKeys


class TestRateLimitService:
    """Test INCR/EXPIRE/TTL windows."""

    @pytest.mark.asyncio
    async def test_first_call_allowed(self, fake_redis) -> None:
        """The first call in a window is always allowed."""
        service = RateLimitService(fake_redis)

        assert await service.check("u1", RateLimitActions.ANALYZE) == Allowed()

    @pytest.mark.asyncio
    async def test_second_call_must_wait(self, fake_redis) -> None:
        """analyze allows one call per 5 minutes, the second waits at most the window."""
        service = RateLimitService(fake_redis)
        await service.check("u1", RateLimitActions.ANALYZE)
        fake_redis.advance(60)

        result = await service.check("u1", RateLimitActions.ANALYZE)

        assert isinstance(result, NeedToWait)
        assert 0 < result.seconds <= 300
        assert result.seconds == 240

    @pytest.mark.asyncio
    async def test_allowed_again_after_window(self, fake_redis) -> None:
        """Once the window expires the counter starts over."""
        service = RateLimitService(fake_redis)
        await service.check("u1", RateLimitActions.ANALYZE)
        fake_redis.advance(301)

        assert await service.check("u1", RateLimitActions.ANALYZE) == Allowed()

    @pytest.mark.asyncio
    async def test_limit_above_one(self, fake_redis) -> None:
        """dislike allows two calls per window."""
        service = RateLimitService(fake_redis)

        first = await service.check("u1", RateLimitActions.DISLIKE)
        second = await service.check("u1", RateLimitActions.DISLIKE)
        third = await service.check("u1", RateLimitActions.DISLIKE)

        assert first == second == Allowed()
        assert isinstance(third, NeedToWait)

    @pytest.mark.asyncio
    async def test_windows_are_per_user_and_action(self, fake_redis) -> None:
        """Different users and actions don't share counters."""
        service = RateLimitService(fake_redis)
        await service.check("u1", RateLimitActions.LIKE)

        assert await service.check("u2", RateLimitActions.LIKE) == Allowed()
        assert await service.check("u1", RateLimitActions.DETAILS) == Allowed()

    @pytest.mark.asyncio
    async def test_key_without_ttl_recovers(self, fake_redis) -> None:
        """A counter that lost its TTL reports wait 0 and gets a fresh expiry."""
        service = RateLimitService(fake_redis)
        action = RateLimitAction("custom", 1, timedelta(seconds=30))
        key = RedisKeys().rate_limit("u1", "custom")
        await fake_redis.set(key, 5)

        result = await service.check("u1", action)

        assert result == NeedToWait(seconds=0)
        assert await fake_redis.ttl(key) == 30

    @pytest.mark.asyncio
    async def test_ensure_allowed_raises(self, fake_redis) -> None:
        """ensure_allowed turns NeedToWait into an exception with the wait time."""
        service = RateLimitService(fake_redis)
        await service.ensure_allowed("u1", RateLimitActions.RECOMMENDATION)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await service.ensure_allowed("u1", RateLimitActions.RECOMMENDATION)

        assert exc_info.value.action == "recommendation"
        assert exc_info.value.wait_seconds == 3600
