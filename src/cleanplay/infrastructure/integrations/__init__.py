"""External service integrations."""

from cleanplay.infrastructure.integrations.spotify_client import SpotifyClient

__all__ = ["SpotifyClient"]
