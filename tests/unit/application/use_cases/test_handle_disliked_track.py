"""Tests for HandleDislikedTrackUseCase."""

from unittest.mock import AsyncMock

import pytest

from cleanplay.application.use_cases.handle_disliked_track import (
    HandleDislikedTrackRequest,
    HandleDislikedTrackUseCase,
)
from cleanplay.domain.entities import (
    PlayingContext,
    PlayingContextKind,
    ShortTrack,
    TrackStatus,
)
from cleanplay.domain.exceptions import SpotifyApiError
from cleanplay.domain.ports import NotificationResult
from cleanplay.infrastructure.persistence import Database
from cleanplay.infrastructure.persistence.repositories import (
    TrackStatusRepository,
    UserRepository,
)


@pytest.fixture
def spotify() -> AsyncMock:
    client = AsyncMock()
    client.get_me.return_value = {"id": "spotify-user", "product": "premium"}
    return client


@pytest.fixture
def notifier() -> AsyncMock:
    mock = AsyncMock()
    mock.send.return_value = NotificationResult(success=True, provider_name="fake")
    return mock


@pytest.fixture
def use_case(database: Database, spotify: AsyncMock, fake_redis, notifier: AsyncMock):
    return HandleDislikedTrackUseCase(database, spotify, fake_redis, notifier)


async def _dislike(database: Database, user_id: str, track: ShortTrack) -> None:
    async with database.session_scope() as session:
        await TrackStatusRepository(session).set_status(user_id, track.id, TrackStatus.DISLIKED)


def _request(track: ShortTrack, context: PlayingContext | None = None) -> HandleDislikedTrackRequest:
    return HandleDislikedTrackRequest(
        user_id="u1", access_token="access-token", track=track, context=context
    )


class TestPremiumUser:
    """Premium users get the track skipped and removed from its source."""

    @pytest.mark.asyncio
    async def test_skip_and_remove_from_playlist(
        self, database: Database, seed_user, use_case, spotify: AsyncMock, track: ShortTrack
    ) -> None:
        """The track is skipped, counted, and removed from the playing playlist."""
        await seed_user("u1")
        await _dislike(database, "u1", track)

        response = await use_case.execute(
            _request(track, PlayingContext(PlayingContextKind.PLAYLIST, "pl-1"))
        )

        assert response.skipped is True
        assert response.removed_from == PlayingContextKind.PLAYLIST
        spotify.next_track.assert_awaited_once_with("access-token")
        spotify.remove_from_playlist.assert_awaited_once_with("access-token", "pl-1", track.id)
        async with database.session_scope() as session:
            assert await TrackStatusRepository(session).get_skips("u1", track.id) == 1
            assert (await UserRepository(session).get("u1")).removed_playlists == 1

    @pytest.mark.asyncio
    async def test_remove_from_liked_songs(
        self, database: Database, seed_user, use_case, spotify: AsyncMock, track: ShortTrack
    ) -> None:
        """Playing from Liked Songs removes the track from the collection."""
        await seed_user("u1")
        await _dislike(database, "u1", track)

        response = await use_case.execute(_request(track, PlayingContext(PlayingContextKind.COLLECTION)))

        assert response.removed_from == PlayingContextKind.COLLECTION
        spotify.remove_from_saved_tracks.assert_awaited_once_with("access-token", track.id)
        async with database.session_scope() as session:
            assert (await UserRepository(session).get("u1")).removed_collection == 1

    @pytest.mark.asyncio
    async def test_album_context_is_left_alone(
        self, database: Database, seed_user, use_case, spotify: AsyncMock, track: ShortTrack
    ) -> None:
        """Albums can't be edited, only the skip happens."""
        await seed_user("u1")
        await _dislike(database, "u1", track)

        response = await use_case.execute(_request(track, PlayingContext(PlayingContextKind.ALBUM, "al-1")))

        assert response.skipped is True
        assert response.removed_from is None
        spotify.remove_from_playlist.assert_not_called()
        spotify.remove_from_saved_tracks.assert_not_called()

    @pytest.mark.asyncio
    async def test_removal_failure_keeps_skip(
        self, database: Database, seed_user, use_case, spotify: AsyncMock, track: ShortTrack
    ) -> None:
        """A foreign playlist refusing the edit doesn't fail the skip."""
        await seed_user("u1")
        await _dislike(database, "u1", track)
        spotify.remove_from_playlist.side_effect = SpotifyApiError(403, "You cannot remove tracks")

        response = await use_case.execute(
            _request(track, PlayingContext(PlayingContextKind.PLAYLIST, "foreign"))
        )

        assert response.skipped is True
        assert response.removed_from is None
        async with database.session_scope() as session:
            assert (await UserRepository(session).get("u1")).removed_playlists == 0

    @pytest.mark.asyncio
    async def test_skip_failure_propagates(
        self, database: Database, seed_user, use_case, spotify: AsyncMock, track: ShortTrack
    ) -> None:
        """Errors of the skip itself go to the caller (and from there to the error handler)."""
        await seed_user("u1")
        spotify.next_track.side_effect = SpotifyApiError(502, "Bad Gateway")

        with pytest.raises(SpotifyApiError):
            await use_case.execute(_request(track))


class TestFreeUser:
    """Free users can't be skipped remotely."""

    @pytest.mark.asyncio
    async def test_notice_once_per_day(
        self,
        database: Database,
        seed_user,
        use_case,
        spotify: AsyncMock,
        notifier: AsyncMock,
        fake_redis,
        track: ShortTrack,
    ) -> None:
        """The can't-skip notice is sent once, then again after a day."""
        await seed_user("u1")
        spotify.get_me.return_value = {"id": "spotify-user", "product": "free"}

        first = await use_case.execute(_request(track))
        second = await use_case.execute(_request(track))
        fake_redis.advance(24 * 3600 + 1)
        third = await use_case.execute(_request(track))

        assert (first.notified, second.notified, third.notified) == (True, False, True)
        assert first.skipped is False
        spotify.next_track.assert_not_called()
        assert notifier.send.await_count == 2
        text = notifier.send.await_args.args[0].text
        assert "cannot skip" in text
        assert track.url in text
