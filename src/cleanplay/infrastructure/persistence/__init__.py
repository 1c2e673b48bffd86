"""Infrastructure persistence layer."""

from .database import Database
from .models import (
    Base,
    SpotifyAuthModel,
    TrackLanguageStatsModel,
    TrackStatusModel,
    UserModel,
    UserWordWhitelistModel,
    WordStatsModel,
)
from .repositories import (
    SpotifyAuthRepository,
    TrackLanguageStatsRepository,
    TrackStatusRepository,
    UserRepository,
    WordStatsRepository,
    WordWhitelistRepository,
)

__all__ = [
    "Base",
    "Database",
    "SpotifyAuthModel",
    "SpotifyAuthRepository",
    "TrackLanguageStatsModel",
    "TrackLanguageStatsRepository",
    "TrackStatusModel",
    "TrackStatusRepository",
    "UserModel",
    "UserRepository",
    "UserWordWhitelistModel",
    "WordStatsModel",
    "WordStatsRepository",
    "WordWhitelistRepository",
]
