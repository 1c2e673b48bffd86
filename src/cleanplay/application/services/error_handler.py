"""Per-user error handling shared by the playback scheduler and the lyrics consumer.

Hey future me - this is the one place that knows the error taxonomy:

    429 rate limited       -> suspend the credential for Retry-After (silent)
    403 region forbidden   -> user FORBIDDEN, notify once
    401 / invalid_grant    -> user TOKEN_INVALID, credential deleted, notify once
    bot blocked            -> user BLOCKED (obviously no notification)
    5xx / network          -> debug log, next tick retries
    other Spotify errors   -> warning log, next tick retries
    anything else          -> full traceback, reported as unhandled

"Once" comes for free from UserRepository.set_status returning whether the status
actually changed. Users in any non-active status drop out of the roster, so there's
no second chance to notify anyway.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx

from cleanplay.domain.entities import UserStatus
from cleanplay.domain.exceptions import (
    NotificationBlockedError,
    SpotifyApiError,
    SpotifyInvalidTokenError,
    SpotifyRateLimitedError,
    SpotifyRegionForbiddenError,
    TokenRefreshException,
)
from cleanplay.domain.ports import INotificationProvider, Notification
from cleanplay.infrastructure.persistence.database import Database
from cleanplay.infrastructure.persistence.models import utc_now
from cleanplay.infrastructure.persistence.repositories import (
    SpotifyAuthRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

FORBIDDEN_MESSAGE = (
    "⚠️ Spotify reports that it is unavailable in your country, so I stopped checking "
    "your playback. Connect your account again once Spotify works for you."
)
TOKEN_INVALID_MESSAGE = (
    "⚠️ Your Spotify authorization has expired or was revoked, so I stopped checking "
    "your playback. Please connect your Spotify account again."
)


@dataclass(frozen=True)
class ErrorHandlingResult:
    """What the handler did with an error."""

    handled: bool
    user_notified: bool = False


class ErrorHandler:
    """Classify an error raised while working for one user and react to it."""

    def __init__(
        self,
        database: Database,
        notifier: INotificationProvider | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._database = database
        self._notifier = notifier
        self._clock = clock

    async def handle(self, error: BaseException, user_id: str) -> ErrorHandlingResult:
        """
        React to an error.

        Args:
            error: The exception raised by a check or a queue job
            user_id: User the work was done for

        Returns:
            ErrorHandlingResult; handled=False means an unexpected error (already logged)
        """
        # Order matters: the specific Spotify errors subclass SpotifyApiError.
        if isinstance(error, SpotifyRateLimitedError):
            await self._suspend(user_id, error.retry_after)
            return ErrorHandlingResult(handled=True)

        if isinstance(error, SpotifyRegionForbiddenError):
            notified = await self._change_status(user_id, UserStatus.FORBIDDEN, FORBIDDEN_MESSAGE)
            return ErrorHandlingResult(handled=True, user_notified=notified)

        if isinstance(error, SpotifyInvalidTokenError) or (
            isinstance(error, TokenRefreshException) and error.requires_reauth
        ):
            async with self._database.session_scope() as session:
                await SpotifyAuthRepository(session).delete(user_id)
            notified = await self._change_status(
                user_id, UserStatus.TOKEN_INVALID, TOKEN_INVALID_MESSAGE
            )
            return ErrorHandlingResult(handled=True, user_notified=notified)

        if isinstance(error, TokenRefreshException):
            logger.warning("Transient token refresh failure for user %s: %s", user_id, error.message)
            return ErrorHandlingResult(handled=True)

        if isinstance(error, NotificationBlockedError):
            async with self._database.session_scope() as session:
                changed = await UserRepository(session).set_status(user_id, UserStatus.BLOCKED)
            if changed:
                logger.info("User %s blocked the bot, marked as blocked", user_id)
            return ErrorHandlingResult(handled=True)

        if isinstance(error, httpx.TransportError) or (
            isinstance(error, SpotifyApiError) and error.is_server_error
        ):
            logger.debug("Transient upstream error for user %s: %s", user_id, error)
            return ErrorHandlingResult(handled=True)

        if isinstance(error, SpotifyApiError):
            logger.warning(
                "Spotify API error for user %s: %d %s", user_id, error.status_code, error.api_message
            )
            return ErrorHandlingResult(handled=True)

        logger.error("Unhandled error for user %s: %s", user_id, error, exc_info=error)
        return ErrorHandlingResult(handled=False)

    async def _suspend(self, user_id: str, seconds: int) -> None:
        until = self._clock() + timedelta(seconds=seconds)
        async with self._database.session_scope() as session:
            await SpotifyAuthRepository(session).suspend_until(user_id, until)
        logger.info("Rate limited by Spotify, user %s suspended for %ds", user_id, seconds)

    async def _change_status(self, user_id: str, status: UserStatus, message: str) -> bool:
        """Set the status; notify only on an actual transition. Returns whether notified."""
        async with self._database.session_scope() as session:
            changed = await UserRepository(session).set_status(user_id, status)

        if not changed:
            return False
        logger.info("User %s is now %s", user_id, status.value)
        return await self._notify(user_id, message)

    async def _notify(self, user_id: str, message: str) -> bool:
        if self._notifier is None:
            return False
        try:
            result = await self._notifier.send(Notification(recipient=user_id, text=message))
        except Exception as e:
            # The error being handled matters more than the notice about it.
            logger.warning("Could not notify user %s about status change: %s", user_id, e)
            return False
        return result.success
