"""Tests for the Spotify Web API client."""

import pytest
from pytest_httpx import HTTPXMock

from cleanplay.config import SpotifySettings
from cleanplay.domain.entities import (
    NotPlaying,
    NotPlayingReason,
    Playing,
    PlayingContextKind,
)
from cleanplay.domain.exceptions import (
    SpotifyApiError,
    SpotifyInvalidTokenError,
    SpotifyRateLimitedError,
    SpotifyRegionForbiddenError,
    TokenRefreshException,
)
from cleanplay.infrastructure.integrations.spotify_client import (
    SpotifyClient,
    parse_currently_playing,
)

API = "https://api.spotify.test/v1"
TOKEN_URL = "https://accounts.spotify.test/api/token"

TRACK_ITEM = {
    "id": "4uLU6hMCjMI75M1A2tKUQC",
    "name": "Never Gonna Give You Up",
    "duration_ms": 213573,
    "external_urls": {"spotify": "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC"},
    "artists": [{"id": "0gxyHStUsqpMadRV0Di1Qt", "name": "Rick Astley"}],
    "album": {
        "name": "Whenever You Need Somebody",
        "external_urls": {"spotify": "https://open.spotify.com/album/6N9PS4QXF1D0OWPk0Sxtb4"},
    },
    "is_local": False,
}


@pytest.fixture
def client() -> SpotifyClient:
    return SpotifyClient(
        SpotifySettings(
            client_id="client-id",
            client_secret="client-secret",
            api_base_url=API,
            token_url=TOKEN_URL,
        )
    )


class TestParseCurrentlyPlaying:
    """Test the currently-playing payload mapping."""

    def test_track_in_playlist(self) -> None:
        """A playing track carries its snapshot and the playlist id from the URI."""
        payload = {
            "is_playing": True,
            "currently_playing_type": "track",
            "item": TRACK_ITEM,
            "context": {"type": "playlist", "uri": "spotify:playlist:37i9dQZF1DXcBWIGoYBM5M"},
        }

        playing = parse_currently_playing(payload)

        assert isinstance(playing, Playing)
        assert playing.track.id == "4uLU6hMCjMI75M1A2tKUQC"
        assert playing.track.duration_secs == 213
        assert playing.track.artist_names == ["Rick Astley"]
        assert playing.context.kind == PlayingContextKind.PLAYLIST
        assert playing.context.id == "37i9dQZF1DXcBWIGoYBM5M"

    def test_liked_songs(self) -> None:
        """The collection context has no id."""
        payload = {
            "is_playing": True,
            "item": TRACK_ITEM,
            "context": {"type": "collection", "uri": "spotify:user:someone:collection"},
        }

        playing = parse_currently_playing(payload)

        assert playing.context.kind == PlayingContextKind.COLLECTION
        assert playing.context.id is None

    @pytest.mark.parametrize(
        ("payload", "reason"),
        [
            (None, NotPlayingReason.NOTHING),
            ({"is_playing": False, "item": TRACK_ITEM}, NotPlayingReason.PAUSE),
            ({"is_playing": True, "currently_playing_type": "episode", "item": {"id": "e"}}, NotPlayingReason.PODCAST),
            ({"is_playing": True, "item": {**TRACK_ITEM, "id": None, "is_local": True}}, NotPlayingReason.LOCAL),
            ({"is_playing": True, "item": None}, NotPlayingReason.NOTHING),
        ],
    )
    def test_not_playing_shapes(self, payload: dict | None, reason: NotPlayingReason) -> None:
        """Pause, podcasts, local files and empty players are all NotPlaying."""
        assert parse_currently_playing(payload) == NotPlaying(reason)


class TestSpotifyClient:
    """Test HTTP calls and error mapping."""

    @pytest.mark.asyncio
    async def test_currently_playing(self, httpx_mock: HTTPXMock, client: SpotifyClient) -> None:
        """The bearer token is sent and the payload is parsed."""
        httpx_mock.add_response(
            url=f"{API}/me/player/currently-playing?additional_types=episode",
            json={"is_playing": True, "item": TRACK_ITEM, "context": None},
        )

        playing = await client.get_currently_playing("token-1")
        await client.close()

        assert isinstance(playing, Playing)
        assert playing.context is None
        assert httpx_mock.get_request().headers["Authorization"] == "Bearer token-1"

    @pytest.mark.asyncio
    async def test_currently_playing_no_content(
        self, httpx_mock: HTTPXMock, client: SpotifyClient
    ) -> None:
        """204 means nothing is playing."""
        httpx_mock.add_response(
            url=f"{API}/me/player/currently-playing?additional_types=episode", status_code=204
        )

        assert await client.get_currently_playing("t") == NotPlaying(NotPlayingReason.NOTHING)

    @pytest.mark.asyncio
    async def test_rate_limited(self, httpx_mock: HTTPXMock, client: SpotifyClient) -> None:
        """429 carries Retry-After."""
        httpx_mock.add_response(
            url=f"{API}/me/player/next",
            method="POST",
            status_code=429,
            headers={"Retry-After": "17"},
        )

        with pytest.raises(SpotifyRateLimitedError) as exc_info:
            await client.next_track("t")

        assert exc_info.value.retry_after == 17

    @pytest.mark.asyncio
    async def test_invalid_token(self, httpx_mock: HTTPXMock, client: SpotifyClient) -> None:
        """401 is an invalid token."""
        httpx_mock.add_response(
            url=f"{API}/me",
            status_code=401,
            json={"error": {"status": 401, "message": "The access token expired"}},
        )

        with pytest.raises(SpotifyInvalidTokenError, match="access token expired"):
            await client.get_me("t")

    @pytest.mark.asyncio
    async def test_region_forbidden(self, httpx_mock: HTTPXMock, client: SpotifyClient) -> None:
        """403 with the region message is its own error."""
        httpx_mock.add_response(
            url=f"{API}/me",
            status_code=403,
            json={"error": {"status": 403, "message": "Spotify is unavailable in this country"}},
        )

        with pytest.raises(SpotifyRegionForbiddenError):
            await client.get_me("t")

    @pytest.mark.asyncio
    async def test_other_403_is_generic(self, httpx_mock: HTTPXMock, client: SpotifyClient) -> None:
        """Other 403s (e.g. non-premium playback control) stay generic API errors."""
        httpx_mock.add_response(
            url=f"{API}/me/player/next",
            method="POST",
            status_code=403,
            json={"error": {"status": 403, "message": "Player command failed: Premium required"}},
        )

        with pytest.raises(SpotifyApiError) as exc_info:
            await client.next_track("t")

        assert not isinstance(exc_info.value, SpotifyRegionForbiddenError)
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_server_error(self, httpx_mock: HTTPXMock, client: SpotifyClient) -> None:
        """5xx is a server error."""
        httpx_mock.add_response(url=f"{API}/me", status_code=502, text="Bad Gateway")

        with pytest.raises(SpotifyApiError) as exc_info:
            await client.get_me("t")

        assert exc_info.value.is_server_error is True

    @pytest.mark.asyncio
    async def test_remove_from_playlist(self, httpx_mock: HTTPXMock, client: SpotifyClient) -> None:
        """The track URI is sent in the DELETE body."""
        httpx_mock.add_response(url=f"{API}/playlists/pl-1/tracks", method="DELETE", json={})

        await client.remove_from_playlist("t", "pl-1", "track-9")

        request = httpx_mock.get_request()
        assert b"spotify:track:track-9" in request.content

    @pytest.mark.asyncio
    async def test_remove_from_saved_tracks(
        self, httpx_mock: HTTPXMock, client: SpotifyClient
    ) -> None:
        """Liked Songs removal goes by id."""
        httpx_mock.add_response(url=f"{API}/me/tracks?ids=track-9", method="DELETE")

        await client.remove_from_saved_tracks("t", "track-9")

    @pytest.mark.asyncio
    async def test_refresh_token(self, httpx_mock: HTTPXMock, client: SpotifyClient) -> None:
        """A refresh posts the grant with client credentials."""
        httpx_mock.add_response(
            url=TOKEN_URL,
            method="POST",
            json={"access_token": "new", "expires_in": 3600, "token_type": "Bearer"},
        )

        token = await client.refresh_token("refresh-1")

        assert token["access_token"] == "new"
        request = httpx_mock.get_request()
        assert b"grant_type=refresh_token" in request.content
        assert request.headers["Authorization"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_refresh_invalid_grant(self, httpx_mock: HTTPXMock, client: SpotifyClient) -> None:
        """invalid_grant is terminal."""
        httpx_mock.add_response(
            url=TOKEN_URL,
            method="POST",
            status_code=400,
            json={"error": "invalid_grant", "error_description": "Refresh token revoked"},
        )

        with pytest.raises(TokenRefreshException) as exc_info:
            await client.refresh_token("refresh-1")

        assert exc_info.value.error_code == "invalid_grant"
        assert exc_info.value.requires_reauth is True
