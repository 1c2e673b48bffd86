"""Repository implementations over SQLAlchemy async sessions."""

import logging
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cleanplay.domain.entities import (
    LyricsProvider,
    SpotifyCredential,
    TrackStatus,
    User,
    UserStatus,
)
from cleanplay.domain.exceptions import EntityNotFoundException
from cleanplay.infrastructure.persistence.models import (
    UNKNOWN_LANGUAGE,
    SpotifyAuthModel,
    TrackLanguageStatsModel,
    TrackStatusModel,
    UserModel,
    UserWordWhitelistModel,
    WordStatsModel,
    ensure_utc_aware,
    utc_now,
)

logger = logging.getLogger(__name__)

_PROVIDER_COLUMNS = {
    LyricsProvider.MUSIXMATCH: UserModel.lyrics_musixmatch,
    LyricsProvider.LRCLIB: UserModel.lyrics_lrclib,
    LyricsProvider.AZLYRICS: UserModel.lyrics_azlyrics,
    LyricsProvider.GENIUS: UserModel.lyrics_genius,
}


# Hey future me, same rules as every repository here: the session is injected and
# NEVER committed inside the repo. Database.session_scope() commits or rolls back.
class UserRepository:
    """Users, their status, config and statistics."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _model_to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            status=UserStatus(model.status),
            locale=model.locale,
            cfg_check_profanity=model.cfg_check_profanity,
            cfg_skip_tracks=model.cfg_skip_tracks,
            cfg_skippage_secs=model.cfg_skippage_secs,
            last_played_track_id=model.last_played_track_id,
            removed_playlists=model.removed_playlists,
            removed_collection=model.removed_collection,
        )

    async def add(self, user: User) -> None:
        """Stage a new user."""
        self.session.add(
            UserModel(
                id=user.id,
                name=user.name,
                status=user.status.value,
                locale=user.locale,
                cfg_check_profanity=user.cfg_check_profanity,
                cfg_skip_tracks=user.cfg_skip_tracks,
                cfg_skippage_secs=user.cfg_skippage_secs,
                last_played_track_id=user.last_played_track_id,
                removed_playlists=0,
                removed_collection=0,
            )
        )
        await self.session.flush()

    async def get(self, user_id: str) -> User | None:
        model = await self.session.get(UserModel, user_id)
        return self._model_to_entity(model) if model else None

    async def set_status(self, user_id: str, status: UserStatus) -> bool:
        """Set the status.

        Returns:
            True if the status actually changed (used to notify only once)
        """
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.status != status.value)
            .values(status=status.value)
        )
        return bool(result.rowcount)

    # Yo, this is the "did the track change since last tick?" check AND the write in one
    # statement. rowcount == 0 means the marker already equals track_id -> nothing to do.
    async def sync_current_playing(self, user_id: str, track_id: str) -> bool:
        """Persist the last playing track.

        Returns:
            True when the track differs from the stored one
        """
        result = await self.session.execute(
            update(UserModel)
            .where(
                UserModel.id == user_id,
                (UserModel.last_played_track_id.is_(None))
                | (UserModel.last_played_track_id != track_id),
            )
            .values(last_played_track_id=track_id)
        )
        return bool(result.rowcount)

    async def increment_removed(self, user_id: str, playlists: int = 0, collection: int = 0) -> None:
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(
                removed_playlists=UserModel.removed_playlists + playlists,
                removed_collection=UserModel.removed_collection + collection,
            )
        )

    async def increment_lyrics_stats(
        self,
        user_id: str,
        found: bool,
        profane: bool,
        provider: LyricsProvider | None,
    ) -> None:
        """Bump consumer statistics for one processed job."""
        values = {
            "lyrics_checked": UserModel.lyrics_checked + 1,
            "lyrics_found": UserModel.lyrics_found + int(found),
            "lyrics_profane": UserModel.lyrics_profane + int(profane),
        }
        if provider is not None:
            column = _PROVIDER_COLUMNS[provider]
            values[column.key] = column + 1
        await self.session.execute(update(UserModel).where(UserModel.id == user_id).values(**values))

    async def get_lyrics_stats(self, user_id: str) -> dict[str, int]:
        model = await self.session.get(UserModel, user_id)
        if model is None:
            raise EntityNotFoundException("User", user_id)
        return {
            "checked": model.lyrics_checked,
            "found": model.lyrics_found,
            "profane": model.lyrics_profane,
            LyricsProvider.MUSIXMATCH.value: model.lyrics_musixmatch,
            LyricsProvider.LRCLIB.value: model.lyrics_lrclib,
            LyricsProvider.AZLYRICS.value: model.lyrics_azlyrics,
            LyricsProvider.GENIUS.value: model.lyrics_genius,
        }


class SpotifyAuthRepository:
    """Credentials and polling suspension."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _model_to_entity(model: SpotifyAuthModel) -> SpotifyCredential:
        return SpotifyCredential(
            user_id=model.user_id,
            access_token=model.access_token,
            refresh_token=model.refresh_token,
            expires_at=ensure_utc_aware(model.expires_at),
            suspend_until=ensure_utc_aware(model.suspend_until),
        )

    async def _get_model(self, user_id: str) -> SpotifyAuthModel | None:
        result = await self.session.execute(
            select(SpotifyAuthModel).where(SpotifyAuthModel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: str) -> SpotifyCredential | None:
        model = await self._get_model(user_id)
        return self._model_to_entity(model) if model else None

    async def save(self, credential: SpotifyCredential) -> None:
        """Insert or replace the user's single credential."""
        model = await self._get_model(credential.user_id)
        if model is None:
            model = SpotifyAuthModel(user_id=credential.user_id)
            self.session.add(model)
        model.access_token = credential.access_token
        model.refresh_token = credential.refresh_token
        model.expires_at = credential.expires_at
        model.suspend_until = credential.suspend_until
        await self.session.flush()

    async def update_tokens(
        self, user_id: str, access_token: str, refresh_token: str, expires_at: datetime
    ) -> None:
        await self.session.execute(
            update(SpotifyAuthModel)
            .where(SpotifyAuthModel.user_id == user_id)
            .values(access_token=access_token, refresh_token=refresh_token, expires_at=expires_at)
        )

    async def suspend_until(self, user_id: str, until: datetime) -> None:
        """Exclude the user from rosters until the given time."""
        await self.session.execute(
            update(SpotifyAuthModel)
            .where(SpotifyAuthModel.user_id == user_id)
            .values(suspend_until=until)
        )

    async def delete(self, user_id: str) -> None:
        await self.session.execute(delete(SpotifyAuthModel).where(SpotifyAuthModel.user_id == user_id))

    # Hey future me - THIS is the roster query. Active status + has a credential +
    # not suspended. Users flipped to TokenInvalid/Forbidden/Blocked drop out here.
    async def list_pollable_user_ids(self, now: datetime | None = None) -> list[str]:
        """Users eligible for a playback check right now."""
        now = now or utc_now()
        result = await self.session.execute(
            select(SpotifyAuthModel.user_id)
            .join(UserModel, UserModel.id == SpotifyAuthModel.user_id)
            .where(
                UserModel.status == UserStatus.ACTIVE.value,
                SpotifyAuthModel.suspend_until <= now,
            )
            .order_by(SpotifyAuthModel.user_id)
        )
        return list(result.scalars().all())


class TrackStatusRepository:
    """Per (user, track) preferences."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get_model(self, user_id: str, track_id: str) -> TrackStatusModel | None:
        result = await self.session.execute(
            select(TrackStatusModel).where(
                TrackStatusModel.user_id == user_id,
                TrackStatusModel.track_id == track_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_status(self, user_id: str, track_id: str) -> TrackStatus:
        """Preference for the track, NONE when no row exists."""
        model = await self._get_model(user_id, track_id)
        return TrackStatus(model.status) if model else TrackStatus.NONE

    async def set_status(self, user_id: str, track_id: str, status: TrackStatus) -> None:
        """Create the row lazily, otherwise update it in place."""
        model = await self._get_model(user_id, track_id)
        if model is None:
            self.session.add(
                TrackStatusModel(user_id=user_id, track_id=track_id, status=status.value, skips=0)
            )
        else:
            model.status = status.value
        await self.session.flush()

    async def increase_skips(self, user_id: str, track_id: str) -> None:
        await self.session.execute(
            update(TrackStatusModel)
            .where(TrackStatusModel.user_id == user_id, TrackStatusModel.track_id == track_id)
            .values(skips=TrackStatusModel.skips + 1)
        )

    async def get_skips(self, user_id: str, track_id: str) -> int:
        model = await self._get_model(user_id, track_id)
        return model.skips if model else 0


class WordWhitelistRepository:
    """Per-user allow-list of words for the profanity filter."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_words(self, user_id: str) -> set[str]:
        result = await self.session.execute(
            select(UserWordWhitelistModel.word).where(UserWordWhitelistModel.user_id == user_id)
        )
        return set(result.scalars().all())

    async def add_word(self, user_id: str, word: str) -> bool:
        """Allow a word. Returns False if it was already allowed."""
        word = word.strip().lower()
        existing = await self.session.execute(
            select(UserWordWhitelistModel.id).where(
                UserWordWhitelistModel.user_id == user_id,
                UserWordWhitelistModel.word == word,
            )
        )
        if existing.scalar_one_or_none() is not None:
            return False
        self.session.add(UserWordWhitelistModel(user_id=user_id, word=word))
        await self.session.flush()
        return True

    async def remove_word(self, user_id: str, word: str) -> bool:
        result = await self.session.execute(
            delete(UserWordWhitelistModel).where(
                UserWordWhitelistModel.user_id == user_id,
                UserWordWhitelistModel.word == word.strip().lower(),
            )
        )
        return bool(result.rowcount)


class TrackLanguageStatsRepository:
    """Per-user counts of checked tracks by lyrics language."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def increase_count(self, user_id: str, language: str | None) -> None:
        """Count one more checked track. None means no lyrics or undetected language."""
        language = language or UNKNOWN_LANGUAGE
        result = await self.session.execute(
            update(TrackLanguageStatsModel)
            .where(
                TrackLanguageStatsModel.user_id == user_id,
                TrackLanguageStatsModel.language == language,
            )
            .values(count=TrackLanguageStatsModel.count + 1, updated_at=utc_now())
        )
        if not result.rowcount:
            self.session.add(TrackLanguageStatsModel(user_id=user_id, language=language, count=1))
            await self.session.flush()

    async def stats_for_user(self, user_id: str) -> list[tuple[str | None, int]]:
        """(language, count) pairs, most frequent first."""
        result = await self.session.execute(
            select(TrackLanguageStatsModel.language, TrackLanguageStatsModel.count)
            .where(TrackLanguageStatsModel.user_id == user_id)
            .order_by(TrackLanguageStatsModel.count.desc(), TrackLanguageStatsModel.language)
        )
        return [
            (None if language == UNKNOWN_LANGUAGE else language, count)
            for language, count in result.all()
        ]


# Yo, only the profanity consumer writes here and it handles one job at a time, so the
# UPDATE-then-INSERT below can't race with itself.
class WordStatsRepository:
    """Global statistics of profane words seen in checked lyrics."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def increase_check_occurrences(self, words: Iterable[str]) -> None:
        unique = sorted({word.lower() for word in words if word})
        if not unique:
            return
        result = await self.session.execute(
            select(WordStatsModel.word).where(WordStatsModel.word.in_(unique))
        )
        existing = set(result.scalars().all())
        if existing:
            await self.session.execute(
                update(WordStatsModel)
                .where(WordStatsModel.word.in_(existing))
                .values(
                    check_occurrences=WordStatsModel.check_occurrences + 1, updated_at=utc_now()
                )
            )
        for word in unique:
            if word not in existing:
                self.session.add(WordStatsModel(word=word, check_occurrences=1))
        await self.session.flush()

    async def top_words(self, limit: int = 10) -> list[tuple[str, int]]:
        result = await self.session.execute(
            select(WordStatsModel.word, WordStatsModel.check_occurrences)
            .order_by(WordStatsModel.check_occurrences.desc(), WordStatsModel.word)
            .limit(limit)
        )
        return [(word, count) for word, count in result.all()]
