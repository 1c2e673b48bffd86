"""Redis cache for lyrics search results, one namespace per provider."""

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from cleanplay.domain.entities import LyricsProvider, LyricsSearchResult
from cleanplay.infrastructure.cache import RedisKeys

logger = logging.getLogger(__name__)

# Stored when a provider had nothing for the track. Valid JSON, never a valid result.
NOT_FOUND = "null"


class LyricsCache:
    """get/set the answer of one provider for one track id.

    An answer is either a LyricsSearchResult or "this provider has nothing", both
    kept for the same TTL. Cache problems are never fatal: a broken entry or a Redis
    hiccup is logged and behaves like an absent entry.
    """

    def __init__(self, redis: Redis, ttl_seconds: int, keys: RedisKeys | None = None) -> None:
        self._redis = redis
        self._ttl = ttl_seconds
        self._keys = keys or RedisKeys()

    async def lookup(
        self, provider: LyricsProvider, track_id: str
    ) -> tuple[bool, LyricsSearchResult | None]:
        """
        Read a provider's cached answer.

        Returns:
            (cached, result). cached is False when the provider has to be asked;
            (True, None) is a remembered "not found".
        """
        key = self._keys.lyrics(provider.value, track_id)
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            logger.warning("Lyrics cache read failed for %s: %s", key, e)
            return False, None
        if raw is None:
            return False, None
        if raw == NOT_FOUND:
            return True, None
        try:
            return True, LyricsSearchResult.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Dropping unreadable lyrics cache entry %s: %s", key, e)
            return False, None

    async def set(
        self, provider: LyricsProvider, track_id: str, result: LyricsSearchResult | None
    ) -> None:
        """Remember a provider's answer, None meaning it found nothing."""
        if self._ttl <= 0:
            return
        key = self._keys.lyrics(provider.value, track_id)
        value = NOT_FOUND if result is None else result.to_json()
        try:
            await self._redis.set(key, value, ex=self._ttl)
        except RedisError as e:
            logger.warning("Lyrics cache write failed for %s: %s", key, e)
