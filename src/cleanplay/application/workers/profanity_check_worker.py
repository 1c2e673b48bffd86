"""Profanity Check Worker - consumer side of the profanity check queue.

Hey future me - this is where the expensive stuff happens, OFF the scheduler's hot
path. One job at a time:

    pop job -> user state -> lyrics (providers, cached) -> English? -> analyzer
      -> drop lines the user allow-listed -> notify with the remaining lines
      -> bump the user's lyrics stats (always, even if the notification failed)

Along the way every job counts towards the user's per-language track stats, and
every triggering track bumps the global counters of the profane words it contains.

A job that blows up goes to the ErrorHandler and the loop pops the next one right
away. Jobs are idempotent: processing one twice sends a second message at worst.

BLPOP waits at most queue_pop_timeout_seconds, so stop() is noticed within that
time even when the queue is empty.
"""

import asyncio
import html
import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from cleanplay.application.services.error_handler import ErrorHandler
from cleanplay.application.services.formatting import link, track_link
from cleanplay.application.services.lyrics_manager import LyricsManager
from cleanplay.application.services.profanity import LineResult, ProfanityAnalyzer, ProfanityType
from cleanplay.application.services.profanity_check_queue import ProfanityCheckQueue
from cleanplay.application.services.user_state_service import UserStateService
from cleanplay.domain.entities import (
    LyricsProvider,
    LyricsSearchResult,
    ProfanityCheckJob,
    ShortTrack,
)
from cleanplay.domain.exceptions import ValidationException
from cleanplay.domain.ports import INotificationProvider, Notification, NotificationButton
from cleanplay.infrastructure.notifications.telegram_provider import MESSAGE_MAX_LEN
from cleanplay.infrastructure.observability import bind_user, set_correlation_id
from cleanplay.infrastructure.persistence.database import Database
from cleanplay.infrastructure.persistence.repositories import (
    TrackLanguageStatsRepository,
    UserRepository,
    WordStatsRepository,
    WordWhitelistRepository,
)

logger = logging.getLogger(__name__)

SPOILER_OPEN = "<tg-spoiler>"
SPOILER_CLOSE = "</tg-spoiler>"

MESSAGE_TEMPLATE = (
    "Current song ({track}) probably has bad words "
    "(press 'Ignore text 🙈' in case of false positive):\n"
    "<code>{classification}</code>\n\n"
    "{lines}\n\n"
    "{lyrics_link}"
)


@dataclass
class ProfanityCheckOutcome:
    """What checking one track produced."""

    found: bool = False
    skipped: bool = False
    profane: bool = False
    notified: bool = False
    provider: LyricsProvider | None = None
    language: str | None = None
    classification: ProfanityType = ProfanityType.NONE
    flagged_lines: list[int] = field(default_factory=list)


def render_line(line: LineResult) -> str:
    highlighted = line.highlighted(SPOILER_OPEN, SPOILER_CLOSE, html.escape)
    return f"<code>{line.no + 1}:</code> {highlighted}, <code>[{line.typ.describe()}]</code>"


def lyrics_link_text(hit: LyricsSearchResult, full: bool) -> str:
    prefix = "Lyrics" if full else "Full lyrics"
    return f"{prefix} from {hit.provider.label} ({hit.confidence.percent}%)"


def build_message(
    track: ShortTrack,
    hit: LyricsSearchResult,
    lines: list[LineResult],
    classification: ProfanityType,
    max_len: int = MESSAGE_MAX_LEN,
) -> str:
    """Render the notification, dropping trailing lines until it fits `max_len`."""
    rendered = [render_line(line) for line in lines]
    count = len(rendered)

    while True:
        text = MESSAGE_TEMPLATE.format(
            track=track_link(track),
            classification=html.escape(classification.describe()),
            lines="\n".join(rendered[:count]),
            lyrics_link=link(hit.link, lyrics_link_text(hit, count == len(rendered))),
        )
        if len(text) <= max_len or count == 0:
            return text
        count -= 1


def _callback_data(action: str, track_id: str) -> str:
    return json.dumps({action: track_id}, separators=(",", ":"))


def build_buttons(track: ShortTrack) -> list[NotificationButton]:
    """Dislike / Ignore text. Callback data is compact JSON, Telegram allows 64 bytes."""
    return [
        NotificationButton("Dislike 👎", _callback_data("dislike", track.id)),
        NotificationButton("Ignore text 🙈", _callback_data("ignore", track.id)),
    ]


class ProfanityCheckWorker:
    """Consume profanity check jobs until stopped."""

    def __init__(
        self,
        queue: ProfanityCheckQueue,
        database: Database,
        user_state_service: UserStateService,
        lyrics_manager: LyricsManager,
        analyzer: ProfanityAnalyzer,
        notifier: INotificationProvider,
        error_handler: ErrorHandler,
        pop_timeout_seconds: int = 5,
    ) -> None:
        self._queue = queue
        self._database = database
        self._user_state = user_state_service
        self._lyrics = lyrics_manager
        self._analyzer = analyzer
        self._notifier = notifier
        self._error_handler = error_handler
        self._pop_timeout = pop_timeout_seconds

        self._stop_event = asyncio.Event()
        self._running = False
        self._stats: dict[str, int] = {
            "processed": 0,
            "failed": 0,
            "malformed": 0,
            "found": 0,
            "profane": 0,
            "notified": 0,
        }
        self._last_job_at: datetime | None = None

    async def start(self) -> None:
        """Pop and process jobs until stop() is called."""
        self._running = True
        self._stop_event.clear()
        logger.info("ProfanityCheckWorker started (pop_timeout=%ds)", self._pop_timeout)

        try:
            while not self._stop_event.is_set():
                try:
                    await self.run_once()
                except Exception as e:
                    # Queue itself unreachable: don't spin, wait a pop timeout (or stop).
                    logger.error("Profanity queue error: %s", e, exc_info=True)
                    try:
                        await asyncio.wait_for(self._stop_event.wait(), timeout=self._pop_timeout)
                    except TimeoutError:
                        pass
        finally:
            self._running = False
            logger.info("ProfanityCheckWorker stopped")

    def stop(self) -> None:
        """Signal the worker to stop after the current job / pop timeout."""
        self._stop_event.set()

    async def run_once(self) -> bool:
        """
        Pop at most one job and process it.

        Returns:
            True when a job was popped (valid or not)
        """
        try:
            job = await self._queue.pop(self._pop_timeout)
        except ValidationException as e:
            self._stats["malformed"] += 1
            logger.warning("Dropping profanity check job: %s", e.message)
            return True

        if job is None:
            return False
        await self.process_job(job)
        return True

    async def process_job(self, job: ProfanityCheckJob) -> ProfanityCheckOutcome | None:
        """
        Process one job; never raises.

        Returns:
            The outcome, None when the job was dropped or failed
        """
        self._last_job_at = datetime.now(UTC)
        set_correlation_id()
        bind_user(job.user_id)
        try:
            state = await self._user_state.get_user_state(job.user_id)
            if state is None or not state.user.is_active:
                # Blocked or forbidden users can't receive the message anyway.
                logger.info("Dropping profanity check for inactive or unknown user %s", job.user_id)
                return None

            outcome = await self.check(job.user_id, job.track)

            async with self._database.session_scope() as session:
                await UserRepository(session).increment_lyrics_stats(
                    job.user_id,
                    found=outcome.found,
                    profane=outcome.profane,
                    provider=outcome.provider,
                )
        except Exception as e:
            self._stats["failed"] += 1
            await self._handle_error(e, job.user_id)
            return None

        self._stats["processed"] += 1
        self._stats["found"] += int(outcome.found)
        self._stats["profane"] += int(outcome.profane)
        self._stats["notified"] += int(outcome.notified)
        return outcome

    async def check(self, user_id: str, track: ShortTrack) -> ProfanityCheckOutcome:
        """Lyrics + analysis + notification for one track."""
        outcome = ProfanityCheckOutcome()

        hit = await self._lyrics.search_for_track(track)
        if hit is None:
            await self._record_language(user_id, None)
            return outcome
        outcome.found = True
        outcome.provider = hit.provider
        outcome.language = hit.language
        await self._record_language(user_id, hit.language)

        if not hit.is_english:
            logger.debug(
                "Lyrics of %s are not English (%s, %s)", track.id, hit.language, hit.provider.value
            )
            outcome.skipped = True
            return outcome

        result = self._analyzer.check(hit.lines)
        outcome.classification = result.typ
        if not result.should_trigger():
            return outcome

        # Word stats count every profane word of the track, allow-listed or not.
        async with self._database.session_scope() as session:
            await WordStatsRepository(session).increase_check_occurrences(result.profane_words())
            allowed = await WordWhitelistRepository(session).list_words(user_id)

        bad_lines = result.filter_allowed(allowed)
        if not bad_lines:
            return outcome

        outcome.profane = True
        outcome.flagged_lines = [line.no for line in bad_lines]
        outcome.notified = await self._notify(user_id, track, hit, bad_lines, result.typ)
        return outcome

    async def _notify(
        self,
        user_id: str,
        track: ShortTrack,
        hit: LyricsSearchResult,
        bad_lines: list[LineResult],
        classification: ProfanityType,
    ) -> bool:
        notification = Notification(
            recipient=user_id,
            text=build_message(track, hit, bad_lines, classification),
            buttons=build_buttons(track),
        )
        # A failed send must not cost us the stats update, so it's handled right here.
        try:
            result = await self._notifier.send(notification)
        except Exception as e:
            await self._handle_error(e, user_id)
            return False
        return result.success

    async def _record_language(self, user_id: str, language: str | None) -> None:
        # Statistics only, a failure here must not cost the user the check.
        try:
            async with self._database.session_scope() as session:
                await TrackLanguageStatsRepository(session).increase_count(user_id, language)
        except Exception as e:
            logger.error("Error increasing language stats for %s: %s", user_id, e, exc_info=True)

    async def _handle_error(self, error: Exception, user_id: str) -> None:
        try:
            await self._error_handler.handle(error, user_id)
        except Exception as handler_error:
            logger.error(
                "Error handler failed for user %s: %s", user_id, handler_error, exc_info=True
            )

    def get_stats(self) -> dict[str, Any]:
        """Stats for the health API."""
        return {
            "running": self._running,
            "pop_timeout_seconds": self._pop_timeout,
            "last_job_at": self._last_job_at.isoformat() if self._last_job_at else None,
            **self._stats,
        }
