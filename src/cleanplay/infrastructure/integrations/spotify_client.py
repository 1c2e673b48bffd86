"""Spotify Web API client for the playback checker."""

import logging
from typing import Any, cast

import httpx

from cleanplay.config import SpotifySettings
from cleanplay.domain.entities import (
    CurrentlyPlaying,
    NotPlaying,
    NotPlayingReason,
    Playing,
    PlayingContext,
    PlayingContextKind,
    ShortTrack,
)
from cleanplay.domain.exceptions import (
    SpotifyApiError,
    SpotifyInvalidTokenError,
    SpotifyRateLimitedError,
    SpotifyRegionForbiddenError,
    TokenRefreshException,
)
from cleanplay.domain.ports import ISpotifyClient

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 1


def parse_short_track(item: dict[str, Any]) -> ShortTrack:
    """Build a ShortTrack from a Spotify track object."""
    album = item.get("album") or {}
    artists = item.get("artists") or []
    return ShortTrack(
        id=item["id"],
        name=item.get("name", ""),
        url=(item.get("external_urls") or {}).get("spotify", ""),
        duration_secs=int(item.get("duration_ms", 0)) // 1000,
        artist_names=[artist.get("name", "") for artist in artists],
        artist_ids=[artist.get("id", "") for artist in artists if artist.get("id")],
        album_name=album.get("name", ""),
        album_url=(album.get("external_urls") or {}).get("spotify", ""),
    )


def parse_context(context: dict[str, Any] | None) -> PlayingContext | None:
    """Map Spotify's context object; playlist ids are taken from the URI."""
    if not context:
        return None
    kind_raw = context.get("type", "")
    uri = context.get("uri") or ""
    if kind_raw == "playlist":
        return PlayingContext(PlayingContextKind.PLAYLIST, uri.rsplit(":", 1)[-1] or None)
    if kind_raw == "collection" or uri.endswith(":collection"):
        return PlayingContext(PlayingContextKind.COLLECTION)
    if kind_raw in ("album", "artist"):
        return PlayingContext(PlayingContextKind(kind_raw), uri.rsplit(":", 1)[-1] or None)
    return PlayingContext(PlayingContextKind.OTHER)


# Hey future me - the currently-playing payload has four "nothing to react to" shapes
# (204, paused, episode, local file) and one "real track" shape. Keep this pure so the
# mapping is testable without HTTP.
def parse_currently_playing(payload: dict[str, Any] | None) -> CurrentlyPlaying:
    """Map a currently-playing response body onto Playing / NotPlaying."""
    if not payload:
        return NotPlaying(NotPlayingReason.NOTHING)
    if not payload.get("is_playing", False):
        return NotPlaying(NotPlayingReason.PAUSE)
    if payload.get("currently_playing_type") == "episode":
        return NotPlaying(NotPlayingReason.PODCAST)
    item = payload.get("item")
    if not item or not item.get("id"):
        if item and item.get("is_local"):
            return NotPlaying(NotPlayingReason.LOCAL)
        return NotPlaying(NotPlayingReason.NOTHING)
    if item.get("is_local"):
        return NotPlaying(NotPlayingReason.LOCAL)
    return Playing(track=parse_short_track(item), context=parse_context(payload.get("context")))


class SpotifyClient(ISpotifyClient):
    """HTTP client for the Spotify Web API."""

    # Hey future me, the httpx client is created lazily in _get_client() so construction
    # never needs a running loop. Remember close() on shutdown (lifespan does it).
    def __init__(self, settings: SpotifySettings) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # Listen up - NO retries in here. A 429 becomes SpotifyRateLimitedError and the
    # error handler suspends the credential for Retry-After. The next tick is the retry.
    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        message = response.reason_phrase or ""
        try:
            body = response.json()
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict):
                message = error.get("message") or message
            elif isinstance(error, str):
                message = body.get("error_description") or error
        except ValueError:
            pass

        if status == 429:
            retry_after_raw = response.headers.get("Retry-After")
            try:
                retry_after = int(retry_after_raw) if retry_after_raw else DEFAULT_RETRY_AFTER
            except ValueError:
                retry_after = DEFAULT_RETRY_AFTER
            raise SpotifyRateLimitedError(retry_after=max(retry_after, 0), message=message)
        if status == 401:
            raise SpotifyInvalidTokenError(message)
        if status == 403 and SpotifyRegionForbiddenError.REGION_MESSAGE.lower() in message.lower():
            raise SpotifyRegionForbiddenError(message)
        raise SpotifyApiError(status, message)

    async def _api_request(
        self,
        method: str,
        path: str,
        access_token: str,
        **kwargs: Any,
    ) -> httpx.Response:
        client = await self._get_client()
        response = await client.request(
            method,
            f"{self.settings.api_base_url}{path}",
            headers={"Authorization": f"Bearer {access_token}"},
            **kwargs,
        )
        self._raise_for_error(response)
        return response

    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Refresh access token.

        Args:
            refresh_token: Refresh token from the stored credential

        Returns:
            Token response (access_token, expires_in, maybe a rotated refresh_token)

        Raises:
            TokenRefreshException: Token endpoint rejected the refresh. requires_reauth
                tells whether this is terminal (invalid_grant, 401/403) or transient
        """
        client = await self._get_client()
        response = await client.post(
            self.settings.token_url,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            auth=(self.settings.client_id, self.settings.client_secret),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if response.status_code == 200:
            return cast(dict[str, Any], response.json())

        error_code: str | None = None
        description = response.reason_phrase or "token refresh failed"
        try:
            body = response.json()
            error_code = body.get("error")
            description = body.get("error_description") or description
        except ValueError:
            pass
        raise TokenRefreshException(
            message=f"Spotify token refresh failed: {description}",
            error_code=error_code,
            http_status=response.status_code,
        )

    async def get_me(self, access_token: str) -> dict[str, Any]:
        response = await self._api_request("GET", "/me", access_token)
        return cast(dict[str, Any], response.json())

    async def get_currently_playing(self, access_token: str) -> CurrentlyPlaying:
        response = await self._api_request(
            "GET",
            "/me/player/currently-playing",
            access_token,
            params={"additional_types": "episode"},
        )
        if response.status_code == 204 or not response.content:
            return NotPlaying(NotPlayingReason.NOTHING)
        return parse_currently_playing(response.json())

    async def next_track(self, access_token: str) -> None:
        await self._api_request("POST", "/me/player/next", access_token)

    async def remove_from_playlist(self, access_token: str, playlist_id: str, track_id: str) -> None:
        # Without "positions" Spotify removes every occurrence of the URI.
        await self._api_request(
            "DELETE",
            f"/playlists/{playlist_id}/tracks",
            access_token,
            json={"tracks": [{"uri": f"spotify:track:{track_id}"}]},
        )

    async def remove_from_saved_tracks(self, access_token: str, track_id: str) -> None:
        await self._api_request("DELETE", "/me/tracks", access_token, params={"ids": track_id})
