"""Worker system - the playback tick scheduler and the profanity check consumer."""

from cleanplay.application.workers.playback_check_worker import PlaybackCheckWorker
from cleanplay.application.workers.profanity_check_worker import (
    ProfanityCheckOutcome,
    ProfanityCheckWorker,
)

__all__ = [
    "PlaybackCheckWorker",
    "ProfanityCheckOutcome",
    "ProfanityCheckWorker",
]
