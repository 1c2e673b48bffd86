"""Use case for reacting to a disliked track that is currently playing.

Hey future me - everything here runs with the ACTING user's own access token, so a
skip or a playlist edit can only ever touch that user's account.

Premium users: skip, count the skip, then try to clean the source (playlist or Liked
Songs) so the track doesn't come back. Spotify only allows remote control for premium
accounts, free users get a "can't skip this" notice instead, at most once per day so
a disliked track on repeat doesn't spam them every 3 seconds.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from redis.asyncio import Redis

from cleanplay.application.services.formatting import track_link
from cleanplay.application.use_cases import UseCase
from cleanplay.domain.entities import PlayingContext, PlayingContextKind, ShortTrack
from cleanplay.domain.ports import INotificationProvider, ISpotifyClient, Notification
from cleanplay.infrastructure.cache import RedisKeys
from cleanplay.infrastructure.persistence.database import Database
from cleanplay.infrastructure.persistence.repositories import (
    TrackStatusRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

CANNOT_SKIP_NOTICE = "cannot_skip"
CANNOT_SKIP_NOTICE_TTL = timedelta(hours=24)


@dataclass
class HandleDislikedTrackRequest:
    """A disliked track caught playing."""

    user_id: str
    access_token: str
    track: ShortTrack
    context: PlayingContext | None = None


@dataclass
class HandleDislikedTrackResponse:
    """What happened to the disliked track."""

    skipped: bool = False
    removed_from: PlayingContextKind | None = None
    notified: bool = False


class HandleDislikedTrackUseCase(UseCase[HandleDislikedTrackRequest, HandleDislikedTrackResponse]):
    """Skip a disliked track and remove it from where it came from."""

    def __init__(
        self,
        database: Database,
        spotify_client: ISpotifyClient,
        redis: Redis,
        notifier: INotificationProvider | None = None,
        keys: RedisKeys | None = None,
    ) -> None:
        self._database = database
        self._spotify = spotify_client
        self._redis = redis
        self._notifier = notifier
        self._keys = keys or RedisKeys()

    async def execute(self, request: HandleDislikedTrackRequest) -> HandleDislikedTrackResponse:
        """
        Handle the disliked track.

        Args:
            request: User, token, track and playback context

        Returns:
            HandleDislikedTrackResponse

        Raises:
            SpotifyApiError: Profile lookup or the skip itself failed
        """
        me = await self._spotify.get_me(request.access_token)
        if me.get("product") != "premium":
            notified = await self._notify_cannot_skip(request)
            return HandleDislikedTrackResponse(notified=notified)

        await self._spotify.next_track(request.access_token)
        async with self._database.session_scope() as session:
            await TrackStatusRepository(session).increase_skips(request.user_id, request.track.id)
        logger.info("Skipped disliked %s for user %s", request.track.name_with_artists, request.user_id)

        removed_from = await self._remove_from_context(request)
        return HandleDislikedTrackResponse(skipped=True, removed_from=removed_from)

    async def _remove_from_context(
        self, request: HandleDislikedTrackRequest
    ) -> PlayingContextKind | None:
        """Best-effort removal; a failure here never fails the skip."""
        context = request.context
        if context is None:
            return None

        try:
            if context.kind == PlayingContextKind.PLAYLIST and context.id:
                # Not checking playlist ownership: Spotify just refuses for foreign playlists.
                await self._spotify.remove_from_playlist(
                    request.access_token, context.id, request.track.id
                )
                async with self._database.session_scope() as session:
                    await UserRepository(session).increment_removed(request.user_id, playlists=1)
                return PlayingContextKind.PLAYLIST

            if context.kind == PlayingContextKind.COLLECTION:
                await self._spotify.remove_from_saved_tracks(request.access_token, request.track.id)
                async with self._database.session_scope() as session:
                    await UserRepository(session).increment_removed(request.user_id, collection=1)
                return PlayingContextKind.COLLECTION
        except Exception as e:
            logger.warning(
                "Could not remove %s from %s for user %s: %s",
                request.track.id,
                context.kind.value,
                request.user_id,
                e,
            )
        return None

    async def _notify_cannot_skip(self, request: HandleDislikedTrackRequest) -> bool:
        if self._notifier is None:
            return False

        first_time = await self._redis.set(
            self._keys.notice(CANNOT_SKIP_NOTICE, request.user_id),
            request.track.id,
            nx=True,
            ex=CANNOT_SKIP_NOTICE_TTL,
        )
        if not first_time:
            return False

        text = f"Current song ({track_link(request.track)}) was disliked, but I cannot skip it..."
        # NotificationBlockedError propagates to the error handler (user -> Blocked).
        result = await self._notifier.send(Notification(recipient=request.user_id, text=text))
        return result.success
