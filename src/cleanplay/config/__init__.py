"""Configuration module for CleanPlay."""

from .settings import (
    DatabaseSettings,
    LyricsSettings,
    ObservabilitySettings,
    RedisSettings,
    Settings,
    SpotifySettings,
    TelegramSettings,
    WorkerSettings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "LyricsSettings",
    "ObservabilitySettings",
    "RedisSettings",
    "Settings",
    "SpotifySettings",
    "TelegramSettings",
    "WorkerSettings",
    "get_settings",
]
