"""Redis client factory and key layout.

Every key is namespaced with the app key, so one Redis can be shared with other
apps. Each writer sets an explicit TTL matching its policy; the only key without
TTL is the job queue list.
"""

from redis.asyncio import Redis

from cleanplay.config import RedisSettings
from cleanplay.config.settings import APP_KEY


def create_redis(settings: RedisSettings) -> Redis:
    """Create the shared async Redis client (str in, str out)."""
    return Redis.from_url(
        settings.url,
        decode_responses=True,
        socket_connect_timeout=5,
        health_check_interval=30,
    )


class RedisKeys:
    """Key builders for everything CleanPlay keeps in Redis."""

    def __init__(self, app_key: str = APP_KEY) -> None:
        self.app_key = app_key

    def lyrics(self, provider: str, track_id: str) -> str:
        return f"{self.app_key}:lyrics:{provider}:{track_id}"

    def backoff(self, user_id: str) -> str:
        return f"{self.app_key}:backoff:{user_id}"

    def rate_limit(self, user_id: str, action: str) -> str:
        return f"{self.app_key}:ratelimit:{user_id}:{action}"

    def skippage(self, user_id: str, track_id: str) -> str:
        return f"{self.app_key}:skippage:{user_id}:{track_id}"

    def skippage_current(self, user_id: str) -> str:
        return f"{self.app_key}:skippage:{user_id}:current"

    def notice(self, kind: str, user_id: str) -> str:
        return f"{self.app_key}:notice:{kind}:{user_id}"

    @property
    def profanity_queue(self) -> str:
        return f"{self.app_key}:queue:profanity_check"
