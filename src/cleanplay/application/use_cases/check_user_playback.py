"""Use case for one playback check of one user (one pass per tick).

Hey future me - the state machine, step by step:

1. user + fresh credential (UserStateService, refreshes when near expiry)
2. currently playing?
   - nothing / paused / podcast / local file -> idle backoff: suspend the credential
     for the next interval from the table and stop
   - a track -> reset idle backoff, continue
3. skippage (optional, per user): recently played track -> skip it and stop
4. track preference:
   - DISLIKED -> HandleDislikedTrackUseCase (if the user wants skipping)
   - IGNORE   -> nothing
   - NONE     -> same track as last check? stop. Otherwise persist it as last played
                 and queue a profanity check (fire-and-forget)

Errors are NOT handled here. They propagate to PlaybackCheckWorker which hands them
to the ErrorHandler, so every error path is classified in exactly one place.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from cleanplay.application.services.backoff_service import BackoffService
from cleanplay.application.services.profanity_check_queue import ProfanityCheckQueue
from cleanplay.application.services.skippage_service import SkippageService
from cleanplay.application.services.user_state_service import UserState, UserStateService
from cleanplay.application.use_cases import UseCase
from cleanplay.application.use_cases.handle_disliked_track import (
    HandleDislikedTrackRequest,
    HandleDislikedTrackUseCase,
)
from cleanplay.domain.entities import (
    NotPlaying,
    PlayingContext,
    ProfanityCheckJob,
    ShortTrack,
    TrackStatus,
)
from cleanplay.domain.ports import ISpotifyClient
from cleanplay.infrastructure.persistence.database import Database
from cleanplay.infrastructure.persistence.models import utc_now
from cleanplay.infrastructure.persistence.repositories import (
    SpotifyAuthRepository,
    TrackStatusRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


class CheckUserResult(str, Enum):
    """Outcome of one user check."""

    COMPLETE = "complete"
    SKIP_SAME = "skip_same"
    NOT_PLAYING = "not_playing"
    UNAUTHORIZED = "unauthorized"


class CheckUserPlaybackUseCase(UseCase[str, CheckUserResult]):
    """React to what one user is playing right now."""

    def __init__(
        self,
        database: Database,
        spotify_client: ISpotifyClient,
        user_state_service: UserStateService,
        backoff_service: BackoffService,
        skippage_service: SkippageService,
        queue: ProfanityCheckQueue,
        disliked_track_handler: HandleDislikedTrackUseCase,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the use case.

        Args:
            database: Row store
            spotify_client: Spotify Web API port
            user_state_service: Resolves user + credential
            backoff_service: Idle backoff counters
            skippage_service: Recently-played markers
            queue: Profanity check job queue (producer side)
            disliked_track_handler: Reaction to disliked tracks
            clock: UTC "now", injectable for tests
        """
        self._database = database
        self._spotify = spotify_client
        self._user_state = user_state_service
        self._backoff = backoff_service
        self._skippage = skippage_service
        self._queue = queue
        self._disliked = disliked_track_handler
        self._clock = clock

    async def execute(self, request: str) -> CheckUserResult:
        """
        Check one user.

        Args:
            request: User ID

        Returns:
            CheckUserResult
        """
        user_id = request
        state = await self._user_state.get_user_state(user_id)
        if state is None:
            return CheckUserResult.UNAUTHORIZED

        playing = await self._spotify.get_currently_playing(state.access_token)
        if isinstance(playing, NotPlaying):
            interval = await self._backoff.record_idle(user_id)
            async with self._database.session_scope() as session:
                await SpotifyAuthRepository(session).suspend_until(user_id, self._clock() + interval)
            logger.debug(
                "User %s not playing (%s), suspended for %s", user_id, playing.reason.value, interval
            )
            return CheckUserResult.NOT_PLAYING

        await self._backoff.reset_idle(user_id)
        track, context = playing.track, playing.context

        if await self._handle_skippage(state, track):
            return CheckUserResult.COMPLETE

        async with self._database.session_scope() as session:
            status = await TrackStatusRepository(session).get_status(user_id, track.id)

        if status == TrackStatus.DISLIKED:
            if state.user.cfg_skip_tracks:
                await self._handle_disliked(state, track, context)
        elif status == TrackStatus.NONE:
            if state.user.cfg_check_profanity:
                async with self._database.session_scope() as session:
                    changed = await UserRepository(session).sync_current_playing(user_id, track.id)
                if not changed:
                    return CheckUserResult.SKIP_SAME
                await self._queue.submit(ProfanityCheckJob(track=track, user_id=user_id))

        return CheckUserResult.COMPLETE

    async def _handle_skippage(self, state: UserState, track: ShortTrack) -> bool:
        """Returns True when the track was skipped as recently played."""
        ttl = state.user.cfg_skippage_secs
        if ttl <= 0:
            return False

        user_id = state.user.id
        if await self._skippage.get_current_playing(user_id) == track.id:
            return False

        skipped = False
        if await self._skippage.was_played_recently(user_id, track.id):
            await self._spotify.next_track(state.access_token)
            logger.info("Skippage: skipped recently played %s for user %s", track.id, user_id)
            skipped = True

        await self._skippage.save_current_playing(user_id, track.id, ttl)
        await self._skippage.remember(user_id, track.id, ttl)
        return skipped

    async def _handle_disliked(
        self, state: UserState, track: ShortTrack, context: PlayingContext | None
    ) -> None:
        await self._disliked.execute(
            HandleDislikedTrackRequest(
                user_id=state.user.id,
                access_token=state.access_token,
                track=track,
                context=context,
            )
        )
