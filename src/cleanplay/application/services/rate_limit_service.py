"""Fixed-window rate limiting for expensive user actions.

Hey future me - this is NOT the Spotify API limiter (Spotify tells us via 429 and we
suspend the credential). This one throttles what users can trigger from the bot,
e.g. one lyrics analysis per 5 minutes. Algorithm per (user, action):

    count = INCR key
    if count == 1: EXPIRE key window      # first hit opens the window
    if count > limit: wait = TTL key      # window still open -> must wait

Atomic INCR means concurrent callers never both get "allowed" past the limit.
A key without TTL (crash between INCR and EXPIRE) reports wait 0 and gets a fresh
EXPIRE so it can't lock the user out forever.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from redis.asyncio import Redis

from cleanplay.domain.exceptions import RateLimitExceededError
from cleanplay.infrastructure.cache import RedisKeys

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitAction:
    """A throttled action: at most `limit` calls per `window`."""

    name: str
    limit: int
    window: timedelta


class RateLimitActions:
    """Known actions."""

    ANALYZE = RateLimitAction("analyze", 1, timedelta(minutes=5))
    DETAILS = RateLimitAction("details", 1, timedelta(seconds=15))
    DISLIKE = RateLimitAction("dislike", 2, timedelta(seconds=20))
    LIKE = RateLimitAction("like", 1, timedelta(seconds=10))
    RECOMMENDATION = RateLimitAction("recommendation", 1, timedelta(hours=1))
    MAGIC = RateLimitAction("magic", 1, timedelta(hours=6))


@dataclass(frozen=True)
class Allowed:
    """The action may proceed."""


@dataclass(frozen=True)
class NeedToWait:
    """The window is exhausted; retry after `seconds`."""

    seconds: int


RateLimitOutput = Allowed | NeedToWait


class RateLimitService:
    """Redis backed fixed-window counters."""

    def __init__(self, redis: Redis, keys: RedisKeys | None = None) -> None:
        self._redis = redis
        self._keys = keys or RedisKeys()

    async def check(self, user_id: str, action: RateLimitAction) -> RateLimitOutput:
        """Count one attempt and decide."""
        key = self._keys.rate_limit(user_id, action.name)
        window = int(action.window.total_seconds())

        count = await self._redis.incr(key)
        if count == 1:
            await self._redis.expire(key, window)

        if count <= action.limit:
            return Allowed()

        ttl = await self._redis.ttl(key)
        if ttl is None or ttl < 0:
            await self._redis.expire(key, window)
            ttl = 0
        logger.debug("Rate limit hit: user=%s action=%s wait=%ss", user_id, action.name, ttl)
        return NeedToWait(seconds=int(ttl))

    async def ensure_allowed(self, user_id: str, action: RateLimitAction) -> None:
        """Like check(), but raise when the user has to wait.

        Raises:
            RateLimitExceededError: With the remaining wait in seconds
        """
        result = await self.check(user_id, action)
        if isinstance(result, NeedToWait):
            raise RateLimitExceededError(action.name, result.seconds)
