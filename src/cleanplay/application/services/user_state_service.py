"""Resolve a user together with a usable Spotify credential."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from cleanplay.domain.entities import SpotifyCredential, User
from cleanplay.domain.ports import ISpotifyClient
from cleanplay.infrastructure.persistence.database import Database
from cleanplay.infrastructure.persistence.models import utc_now
from cleanplay.infrastructure.persistence.repositories import (
    SpotifyAuthRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

# Refresh a little before Spotify would start answering 401.
REFRESH_MARGIN_SECONDS = 60


@dataclass
class UserState:
    """A user plus a credential that is valid for at least REFRESH_MARGIN_SECONDS."""

    user: User
    credential: SpotifyCredential

    @property
    def access_token(self) -> str:
        return self.credential.access_token


class UserStateService:
    """Load user + credential, refreshing the token lazily."""

    def __init__(
        self,
        database: Database,
        spotify_client: ISpotifyClient,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._database = database
        self._spotify = spotify_client
        self._clock = clock

    # Hey future me - the token refresh is an HTTP call, so it runs OUTSIDE any DB
    # session: read in one scope, call Spotify, write in another. A refresh failure
    # (TokenRefreshException) propagates on purpose; the ErrorHandler decides whether
    # it's terminal (TokenInvalid + credential deleted) or just a flaky token endpoint.
    async def get_user_state(self, user_id: str) -> UserState | None:
        """
        Resolve user and fresh credential.

        Args:
            user_id: User ID

        Returns:
            UserState, or None when the user or the credential doesn't exist

        Raises:
            TokenRefreshException: Refreshing the access token failed
        """
        async with self._database.session_scope() as session:
            user = await UserRepository(session).get(user_id)
            credential = await SpotifyAuthRepository(session).get_by_user(user_id)

        if user is None or credential is None:
            logger.debug("No user state for %s (user=%s, credential=%s)", user_id, user, credential)
            return None

        now = self._clock()
        if credential.expires_within(now, REFRESH_MARGIN_SECONDS):
            credential = await self._refresh(credential, now)

        return UserState(user=user, credential=credential)

    async def _refresh(self, credential: SpotifyCredential, now: datetime) -> SpotifyCredential:
        token = await self._spotify.refresh_token(credential.refresh_token)
        refreshed = SpotifyCredential(
            user_id=credential.user_id,
            access_token=token["access_token"],
            # Spotify only sometimes rotates the refresh token.
            refresh_token=token.get("refresh_token") or credential.refresh_token,
            expires_at=now + timedelta(seconds=int(token.get("expires_in", 3600))),
            suspend_until=credential.suspend_until,
        )
        async with self._database.session_scope() as session:
            await SpotifyAuthRepository(session).update_tokens(
                refreshed.user_id,
                refreshed.access_token,
                refreshed.refresh_token,
                refreshed.expires_at,
            )
        logger.debug("Refreshed Spotify token for user %s", credential.user_id)
        return refreshed
