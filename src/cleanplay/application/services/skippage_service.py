"""Skippage: skip tracks that were already played recently.

A user can set cfg_skippage_secs (e.g. one week). Every track that starts playing
gets a key with that TTL; if the same track starts again while its key is alive it
is skipped. Keys are per (user, track) and expire on their own.

The "current" key remembers which track the last check saw, so a track isn't
skipped by its own marker on the next tick while it's still playing.
"""

import logging

from redis.asyncio import Redis

from cleanplay.infrastructure.cache import RedisKeys

logger = logging.getLogger(__name__)


class SkippageService:
    """Remember recently played tracks per user."""

    def __init__(self, redis: Redis, keys: RedisKeys | None = None) -> None:
        self._redis = redis
        self._keys = keys or RedisKeys()

    async def get_current_playing(self, user_id: str) -> str | None:
        return await self._redis.get(self._keys.skippage_current(user_id))

    async def save_current_playing(self, user_id: str, track_id: str, ttl_secs: int) -> None:
        await self._redis.set(self._keys.skippage_current(user_id), track_id, ex=max(ttl_secs, 1))

    async def was_played_recently(self, user_id: str, track_id: str) -> bool:
        return bool(await self._redis.exists(self._keys.skippage(user_id, track_id)))

    async def remember(self, user_id: str, track_id: str, ttl_secs: int) -> None:
        if ttl_secs <= 0:
            return
        await self._redis.set(self._keys.skippage(user_id, track_id), "1", ex=ttl_secs)
