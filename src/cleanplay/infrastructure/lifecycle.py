"""Application context and FastAPI lifespan.

Hey future me - AppContext is THE object graph. Everything (DB, Redis, HTTP adapters,
services, use cases, both workers) is built here, explicitly, once. Nothing in the
app reaches for module-level singletons; tests build their own pieces the same way.

Startup order:  logging -> DB tables -> Redis -> workers (scheduler, consumer)
Shutdown order: stop workers -> wait/cancel tasks -> close HTTP clients -> Redis -> DB
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field

from fastapi import FastAPI
from redis.asyncio import Redis

from cleanplay.application.services.backoff_service import BackoffService
from cleanplay.application.services.error_handler import ErrorHandler
from cleanplay.application.services.lyrics_manager import LyricsManager
from cleanplay.application.services.profanity import ProfanityAnalyzer
from cleanplay.application.services.profanity_check_queue import ProfanityCheckQueue
from cleanplay.application.services.rate_limit_service import RateLimitService
from cleanplay.application.services.skippage_service import SkippageService
from cleanplay.application.services.user_state_service import UserStateService
from cleanplay.application.use_cases.check_user_playback import CheckUserPlaybackUseCase
from cleanplay.application.use_cases.handle_disliked_track import HandleDislikedTrackUseCase
from cleanplay.application.workers.playback_check_worker import PlaybackCheckWorker
from cleanplay.application.workers.profanity_check_worker import ProfanityCheckWorker
from cleanplay.config import LyricsSettings, Settings, get_settings
from cleanplay.domain.ports import ILyricsProvider
from cleanplay.infrastructure.cache import RedisKeys, create_redis
from cleanplay.infrastructure.integrations.spotify_client import SpotifyClient
from cleanplay.infrastructure.lyrics import (
    AZLyricsProvider,
    GeniusProvider,
    LrcLibProvider,
    LyricsCache,
    MusixmatchProvider,
)
from cleanplay.infrastructure.notifications.telegram_provider import (
    TelegramNotificationProvider,
)
from cleanplay.infrastructure.observability import configure_logging
from cleanplay.infrastructure.persistence import Database

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 10.0


def build_lyrics_providers(settings: LyricsSettings) -> list[ILyricsProvider]:
    """Providers in lookup priority order; unconfigured optional ones are left out."""
    providers: list[ILyricsProvider] = []
    if settings.musixmatch_tokens:
        providers.append(
            MusixmatchProvider(
                settings.musixmatch_base_url, settings.musixmatch_tokens, timeout=settings.timeout
            )
        )
    else:
        logger.info("Musixmatch disabled: no user tokens configured")

    providers.append(
        LrcLibProvider(settings.lrclib_base_url, settings.lrclib_client, timeout=settings.timeout)
    )

    if settings.azlyrics_service_url:
        providers.append(AZLyricsProvider(settings.azlyrics_service_url, timeout=settings.timeout))
    else:
        logger.info("AZLyrics disabled: no search service URL configured")

    if settings.genius_service_url:
        providers.append(
            GeniusProvider(
                settings.genius_service_url, settings.genius_token, timeout=settings.timeout
            )
        )
    else:
        logger.info("Genius disabled: no service URL configured")
    return providers


@dataclass
class AppContext:
    """Every long-lived collaborator of the app."""

    settings: Settings
    database: Database
    redis: Redis
    spotify: SpotifyClient
    notifier: TelegramNotificationProvider
    lyrics: LyricsManager
    rate_limit: RateLimitService
    queue: ProfanityCheckQueue
    playback_worker: PlaybackCheckWorker
    profanity_worker: ProfanityCheckWorker
    tasks: list[asyncio.Task[None]] = field(default_factory=list)

    @classmethod
    def build(cls, settings: Settings) -> "AppContext":
        keys = RedisKeys(settings.app_key)
        database = Database(settings.database)
        redis = create_redis(settings.redis)
        spotify = SpotifyClient(settings.spotify)
        notifier = TelegramNotificationProvider(settings.telegram)

        lyrics = LyricsManager(
            build_lyrics_providers(settings.lyrics),
            cache=LyricsCache(redis, settings.lyrics.cache_ttl_seconds, keys),
        )
        queue = ProfanityCheckQueue(redis, keys)
        user_state = UserStateService(database, spotify)
        error_handler = ErrorHandler(database, notifier)

        check_use_case = CheckUserPlaybackUseCase(
            database=database,
            spotify_client=spotify,
            user_state_service=user_state,
            backoff_service=BackoffService(redis, keys),
            skippage_service=SkippageService(redis, keys),
            queue=queue,
            disliked_track_handler=HandleDislikedTrackUseCase(
                database, spotify, redis, notifier, keys
            ),
        )
        playback_worker = PlaybackCheckWorker(
            database=database,
            check_use_case=check_use_case,
            error_handler=error_handler,
            interval_seconds=settings.worker.check_interval_seconds,
            parallel_checks=settings.worker.parallel_checks,
        )
        profanity_worker = ProfanityCheckWorker(
            queue=queue,
            database=database,
            user_state_service=user_state,
            lyrics_manager=lyrics,
            analyzer=ProfanityAnalyzer(),
            notifier=notifier,
            error_handler=error_handler,
            pop_timeout_seconds=settings.worker.queue_pop_timeout_seconds,
        )

        return cls(
            settings=settings,
            database=database,
            redis=redis,
            spotify=spotify,
            notifier=notifier,
            lyrics=lyrics,
            rate_limit=RateLimitService(redis, keys),
            queue=queue,
            playback_worker=playback_worker,
            profanity_worker=profanity_worker,
        )

    def start_workers(self) -> None:
        self.tasks.append(
            asyncio.create_task(self.playback_worker.start(), name="playback_check_worker")
        )
        self.tasks.append(
            asyncio.create_task(self.profanity_worker.start(), name="profanity_check_worker")
        )
        logger.info("Workers started: %s", ", ".join(task.get_name() for task in self.tasks))

    async def stop_workers(self) -> None:
        self.playback_worker.stop()
        self.profanity_worker.stop()
        for task in self.tasks:
            try:
                await asyncio.wait_for(task, timeout=SHUTDOWN_TIMEOUT_SECONDS)
            except TimeoutError:
                logger.warning("Worker %s did not stop in time, cancelling", task.get_name())
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
        self.tasks.clear()

    async def close(self) -> None:
        """Release every external resource. Each step is attempted even if one fails."""
        for name, closer in (
            ("Spotify client", self.spotify.close),
            ("Telegram client", self.notifier.close),
            ("lyrics providers", self.lyrics.close),
            ("Redis", self.redis.aclose),
            ("database", self.database.close),
        ):
            try:
                await closer()
                logger.debug("%s closed", name)
            except Exception as e:
                logger.exception("Error closing %s: %s", name, e)


# Listen future me, @asynccontextmanager makes this the FastAPI lifespan. Everything
# before `yield` is startup, everything after is shutdown. The finally block ALWAYS
# runs, so a crash halfway through startup still closes what was opened.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    configure_logging(
        log_level=settings.observability.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    context = AppContext.build(settings)
    app.state.context = context
    try:
        try:
            await context.database.create_tables()
            if settings.worker.enabled:
                context.start_workers()
            else:
                logger.warning("Workers disabled by configuration")
        except Exception as e:
            logger.exception("Error during application startup: %s", e)
            raise
        yield
    finally:
        logger.info("Shutting down application")
        await context.stop_workers()
        await context.close()
