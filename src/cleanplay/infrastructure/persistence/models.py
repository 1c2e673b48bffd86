"""SQLAlchemy ORM models for CleanPlay."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite hands datetimes back naive even when we stored aware ones.
# Run every DB datetime through this before comparing with datetime.now(UTC) or you
# get "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Yo, the user row doubles as the stats sink for the lyrics consumer. The counters are
# updated with UPDATE ... SET x = x + 1 (see UserRepository.increment_lyrics_stats), so
# scheduler and consumer can both touch the row without stepping on each other.
class UserModel(Base):
    """A (chat) user being watched."""

    __tablename__ = "cleanplay_users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    status: Mapped[str] = mapped_column(String(32), default="active", index=True)
    locale: Mapped[str] = mapped_column(String(8), default="en")

    cfg_check_profanity: Mapped[bool] = mapped_column(Boolean, default=True)
    cfg_skip_tracks: Mapped[bool] = mapped_column(Boolean, default=True)
    cfg_skippage_secs: Mapped[int] = mapped_column(Integer, default=0)

    last_played_track_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    removed_playlists: Mapped[int] = mapped_column(Integer, default=0)
    removed_collection: Mapped[int] = mapped_column(Integer, default=0)

    lyrics_checked: Mapped[int] = mapped_column(Integer, default=0)
    lyrics_found: Mapped[int] = mapped_column(Integer, default=0)
    lyrics_profane: Mapped[int] = mapped_column(Integer, default=0)
    lyrics_musixmatch: Mapped[int] = mapped_column(Integer, default=0)
    lyrics_lrclib: Mapped[int] = mapped_column(Integer, default=0)
    lyrics_azlyrics: Mapped[int] = mapped_column(Integer, default=0)
    lyrics_genius: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class SpotifyAuthModel(Base):
    """OAuth credential; unique per user."""

    __tablename__ = "cleanplay_spotify_auth"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("cleanplay_users.id", ondelete="CASCADE"), unique=True
    )
    access_token: Mapped[str] = mapped_column(Text)
    refresh_token: Mapped[str] = mapped_column(Text)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    suspend_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class TrackStatusModel(Base):
    """Per (user, track) preference."""

    __tablename__ = "cleanplay_track_status"
    __table_args__ = (UniqueConstraint("user_id", "track_id", name="uq_track_status_user_track"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("cleanplay_users.id", ondelete="CASCADE"), index=True
    )
    track_id: Mapped[str] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(String(16), default="none")
    skips: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class UserWordWhitelistModel(Base):
    """Word a user explicitly allowed in lyrics."""

    __tablename__ = "cleanplay_user_word_whitelist"
    __table_args__ = (UniqueConstraint("user_id", "word", name="uq_word_whitelist_user_word"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("cleanplay_users.id", ondelete="CASCADE"), index=True
    )
    word: Mapped[str] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


# Stored instead of NULL for lyrics that weren't found or whose language wasn't
# detected. NULLs never collide in a unique index, so they'd break the upsert.
UNKNOWN_LANGUAGE = "none"


class TrackLanguageStatsModel(Base):
    """How many checked tracks of a user were in each lyrics language."""

    __tablename__ = "cleanplay_track_language_stats"
    __table_args__ = (
        UniqueConstraint("user_id", "language", name="uq_track_language_stats_user_language"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("cleanplay_users.id", ondelete="CASCADE"), index=True
    )
    language: Mapped[str] = mapped_column(String(16), default=UNKNOWN_LANGUAGE)
    count: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class WordStatsModel(Base):
    """Global count of tracks a profane word triggered a check for."""

    __tablename__ = "cleanplay_word_stats"

    word: Mapped[str] = mapped_column(String(128), primary_key=True)
    check_occurrences: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
