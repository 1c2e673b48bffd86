"""Idle-backoff: poll users less often the longer they listen to nothing.

Hey future me - the stored value is the accumulated idle time in seconds. Every
"nothing playing" check adds the interval it just chose, so the counter grows
roughly like wall-clock idle time (we really do sleep that long via suspend_until).
The table is a step function, so the interval only ever grows while idle, and a
single "something is playing" resets it to zero.

Counter semantics are "absent or garbage == never idle". A corrupt value must not
crash the checker, it just restarts the backoff from the first tier.
"""

import logging
from datetime import timedelta

from redis.asyncio import Redis

from cleanplay.infrastructure.cache import RedisKeys

logger = logging.getLogger(__name__)

# (elapsed idle below this) -> (suspend for this long)
IDLE_BACKOFF_TABLE: tuple[tuple[timedelta, timedelta], ...] = (
    (timedelta(minutes=1), timedelta(seconds=10)),
    (timedelta(minutes=10), timedelta(seconds=15)),
    (timedelta(hours=1), timedelta(seconds=20)),
    (timedelta(days=1), timedelta(minutes=1)),
    (timedelta(weeks=1), timedelta(minutes=3)),
)
IDLE_BACKOFF_MAX = timedelta(minutes=5)

# Idle counters for users who vanished shouldn't live forever.
BACKOFF_KEY_TTL = timedelta(days=8)


def idle_suspend_interval(elapsed: timedelta) -> timedelta:
    """Suspend interval for a user idle for `elapsed`.

    Monotonic non-decreasing in elapsed. Negative input is treated as zero.
    """
    for threshold, interval in IDLE_BACKOFF_TABLE:
        if elapsed < threshold:
            return interval
    return IDLE_BACKOFF_MAX


class BackoffService:
    """Per-user idle counter in Redis."""

    def __init__(self, redis: Redis, keys: RedisKeys | None = None) -> None:
        self._redis = redis
        self._keys = keys or RedisKeys()

    async def get_idle(self, user_id: str) -> timedelta:
        """Accumulated idle time; zero when missing or unreadable."""
        raw = await self._redis.get(self._keys.backoff(user_id))
        if raw is None:
            return timedelta(0)
        try:
            seconds = int(raw)
        except (TypeError, ValueError):
            logger.warning("Corrupt backoff counter for user %s: %r, treating as zero", user_id, raw)
            return timedelta(0)
        return timedelta(seconds=max(seconds, 0))

    async def record_idle(self, user_id: str) -> timedelta:
        """Register one "nothing playing" observation.

        Returns:
            How long the user should be suspended from polling now
        """
        elapsed = await self.get_idle(user_id)
        interval = idle_suspend_interval(elapsed)
        key = self._keys.backoff(user_id)
        if elapsed == timedelta(0):
            # Also overwrites a corrupt value, INCRBY on garbage would raise.
            await self._redis.set(key, int(interval.total_seconds()), ex=BACKOFF_KEY_TTL)
        else:
            await self._redis.incrby(key, int(interval.total_seconds()))
            await self._redis.expire(key, BACKOFF_KEY_TTL)
        return interval

    async def reset_idle(self, user_id: str) -> None:
        """Something is playing again."""
        await self._redis.set(self._keys.backoff(user_id), 0, ex=BACKOFF_KEY_TTL)
