"""Application services."""

from cleanplay.application.services.backoff_service import (
    BackoffService,
    idle_suspend_interval,
)
from cleanplay.application.services.error_handler import ErrorHandler, ErrorHandlingResult
from cleanplay.application.services.lyrics_manager import LyricsManager
from cleanplay.application.services.profanity_check_queue import ProfanityCheckQueue
from cleanplay.application.services.rate_limit_service import (
    Allowed,
    NeedToWait,
    RateLimitAction,
    RateLimitActions,
    RateLimitOutput,
    RateLimitService,
)
from cleanplay.application.services.skippage_service import SkippageService
from cleanplay.application.services.user_state_service import UserState, UserStateService

__all__ = [
    "Allowed",
    "BackoffService",
    "ErrorHandler",
    "ErrorHandlingResult",
    "LyricsManager",
    "NeedToWait",
    "ProfanityCheckQueue",
    "RateLimitAction",
    "RateLimitActions",
    "RateLimitOutput",
    "RateLimitService",
    "SkippageService",
    "UserState",
    "UserStateService",
    "idle_suspend_interval",
]
