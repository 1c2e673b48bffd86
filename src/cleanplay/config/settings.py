"""Application settings loaded from environment variables and .env file.

Nested groups map to env vars with a double underscore, e.g.
``SPOTIFY__CLIENT_ID`` or ``WORKER__PARALLEL_CHECKS``.
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_KEY = "cleanplay"


class DatabaseSettings(BaseModel):
    """Row store (SQLAlchemy async URL)."""

    url: str = "sqlite+aiosqlite:///./cleanplay.db"
    echo: bool = False


class RedisSettings(BaseModel):
    """Key-value store used for backoff, rate limits, lyrics cache and the job queue."""

    url: str = "redis://localhost:6379/0"


class SpotifySettings(BaseModel):
    """Spotify Web API credentials and endpoints."""

    client_id: str = ""
    client_secret: str = ""
    api_base_url: str = "https://api.spotify.com/v1"
    token_url: str = "https://accounts.spotify.com/api/token"
    timeout: float = 10.0


class TelegramSettings(BaseModel):
    """Telegram Bot API used as the notification transport."""

    bot_token: str = ""
    api_base_url: str = "https://api.telegram.org"
    timeout: float = 10.0


# Hey future me - the AZLyrics and Genius "service" URLs point at small scraping/search
# proxies, not at the vendor sites. Leave them empty and the provider is simply not
# registered (see AppContext). Musixmatch needs at least one user token for the same reason,
# LrcLib is public and always on.
class LyricsSettings(BaseModel):
    """Lyrics providers and cache."""

    cache_ttl_seconds: int = Field(default=24 * 60 * 60, ge=0)
    timeout: float = 10.0
    musixmatch_base_url: str = "https://apic-desktop.musixmatch.com/ws/1.1"
    musixmatch_tokens: list[str] = Field(default_factory=list)
    lrclib_base_url: str = "https://lrclib.net/api"
    lrclib_client: str = "cleanplay (https://github.com/cleanplay/cleanplay)"
    azlyrics_service_url: str = ""
    genius_service_url: str = ""
    genius_token: str = ""


class WorkerSettings(BaseModel):
    """Scheduler and queue consumer tuning."""

    check_interval_seconds: float = Field(default=3.0, gt=0)
    parallel_checks: int = Field(default=2, ge=1)
    queue_pop_timeout_seconds: int = Field(default=5, ge=1)
    enabled: bool = True


class ObservabilitySettings(BaseModel):
    """Logging."""

    log_level: str = "INFO"
    log_json_format: bool = False


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "CleanPlay"
    app_key: str = APP_KEY
    host: str = "0.0.0.0"
    port: int = 8000

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    lyrics: LyricsSettings = Field(default_factory=LyricsSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
