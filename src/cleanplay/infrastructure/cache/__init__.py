"""Redis access and key layout."""

from cleanplay.infrastructure.cache.redis_client import RedisKeys, create_redis

__all__ = ["RedisKeys", "create_redis"]
