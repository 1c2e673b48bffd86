"""Domain ports (interfaces) for external collaborators."""

from abc import ABC, abstractmethod
from typing import Any

from cleanplay.domain.entities import (
    CurrentlyPlaying,
    LyricsProvider,
    LyricsSearchResult,
    ShortTrack,
)
from cleanplay.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationButton,
    NotificationResult,
)


class ISpotifyClient(ABC):
    """Port for the Spotify Web API operations the checker needs.

    Every call takes the user's access token, so all mutations are attributed to
    that user. Implementations must raise the Spotify* errors from
    cleanplay.domain.exceptions so the error handler can classify them.
    """

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Refresh access token.

        Args:
            refresh_token: Refresh token

        Returns:
            Token response with access_token, expires_in and optionally a new refresh_token

        Raises:
            TokenRefreshException: If the token endpoint rejects the refresh
        """
        pass

    @abstractmethod
    async def get_me(self, access_token: str) -> dict[str, Any]:
        """
        Get the current user's profile (includes "product", e.g. "premium").

        Args:
            access_token: OAuth access token

        Returns:
            Profile JSON
        """
        pass

    @abstractmethod
    async def get_currently_playing(self, access_token: str) -> CurrentlyPlaying:
        """
        Get what the user is playing right now.

        Args:
            access_token: OAuth access token

        Returns:
            Playing(track, context) or NotPlaying(reason)
        """
        pass

    @abstractmethod
    async def next_track(self, access_token: str) -> None:
        """Skip to the next track on the user's active device."""
        pass

    @abstractmethod
    async def remove_from_playlist(self, access_token: str, playlist_id: str, track_id: str) -> None:
        """Remove every occurrence of a track from a playlist."""
        pass

    @abstractmethod
    async def remove_from_saved_tracks(self, access_token: str, track_id: str) -> None:
        """Remove a track from the user's saved tracks ("Liked Songs")."""
        pass


class ILyricsProvider(ABC):
    """Port for a single lyrics source."""

    @property
    @abstractmethod
    def provider(self) -> LyricsProvider:
        """Which provider this is (used for cache namespace and stats)."""
        pass

    @abstractmethod
    async def search(self, track: ShortTrack) -> LyricsSearchResult | None:
        """
        Find lyrics for a track.

        Args:
            track: Track snapshot

        Returns:
            Result for the first confident hit, None when nothing matched
        """
        pass


__all__ = [
    "ILyricsProvider",
    "INotificationProvider",
    "ISpotifyClient",
    "Notification",
    "NotificationButton",
    "NotificationResult",
]
