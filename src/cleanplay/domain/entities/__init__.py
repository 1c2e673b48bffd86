"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from cleanplay.domain.entities.lyrics import (
    Confidence,
    LyricsProvider,
    LyricsSearchResult,
)


# Hey future me - UserStatus is the lifecycle of a user. Only ACTIVE users are ever
# polled. BLOCKED/FORBIDDEN/TOKEN_INVALID are set by the error handler and stay put
# until something external happens (user unblocks the bot, re-authenticates, moves
# region). Stored as lowercase strings in the DB.
class UserStatus(str, Enum):
    """Lifecycle status of a user."""

    ACTIVE = "active"
    BLOCKED = "blocked"
    FORBIDDEN = "forbidden"
    TOKEN_INVALID = "token_invalid"
    INACTIVE = "inactive"
    UNREGISTERED = "unregistered"


class TrackStatus(str, Enum):
    """Per-user preference for a track. NONE means no row exists yet."""

    NONE = "none"
    DISLIKED = "disliked"
    IGNORE = "ignore"


class PlayingContextKind(str, Enum):
    """Where the currently playing track is played from."""

    PLAYLIST = "playlist"
    COLLECTION = "collection"
    ALBUM = "album"
    ARTIST = "artist"
    OTHER = "other"


class NotPlayingReason(str, Enum):
    """Why there is no track to react to. All four are treated the same by the checker."""

    PAUSE = "pause"
    NOTHING = "nothing"
    PODCAST = "podcast"
    LOCAL = "local"


# Yo, ShortTrack is the snapshot we push through the queue - everything the consumer
# needs to search lyrics and render a message, nothing more. to_dict/from_dict define
# the wire format, so don't rename keys without draining the queue first!
@dataclass(frozen=True)
class ShortTrack:
    """Compact track snapshot."""

    id: str
    name: str
    url: str
    duration_secs: int
    artist_names: list[str] = field(default_factory=list)
    artist_ids: list[str] = field(default_factory=list)
    album_name: str = ""
    album_url: str = ""

    @property
    def first_artist(self) -> str:
        """Primary artist, empty string for tracks without artists."""
        return self.artist_names[0] if self.artist_names else ""

    @property
    def name_with_artists(self) -> str:
        """Human readable "Artist, Artist — Title"."""
        return f"{', '.join(self.artist_names)} — {self.name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "duration_secs": self.duration_secs,
            "artist_names": list(self.artist_names),
            "artist_ids": list(self.artist_ids),
            "album_name": self.album_name,
            "album_url": self.album_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShortTrack":
        return cls(
            id=data["id"],
            name=data["name"],
            url=data.get("url", ""),
            duration_secs=int(data.get("duration_secs", 0)),
            artist_names=list(data.get("artist_names", [])),
            artist_ids=list(data.get("artist_ids", [])),
            album_name=data.get("album_name", ""),
            album_url=data.get("album_url", ""),
        )


@dataclass(frozen=True)
class PlayingContext:
    """Playback context; id is the playlist id for PLAYLIST, None for COLLECTION."""

    kind: PlayingContextKind
    id: str | None = None


@dataclass(frozen=True)
class Playing:
    """A concrete track is playing."""

    track: ShortTrack
    context: PlayingContext | None = None


@dataclass(frozen=True)
class NotPlaying:
    """Nothing we can react to is playing."""

    reason: NotPlayingReason


CurrentlyPlaying = Playing | NotPlaying


@dataclass
class User:
    """User with per-user configuration and statistics."""

    id: str
    name: str = ""
    status: UserStatus = UserStatus.ACTIVE
    locale: str = "en"
    cfg_check_profanity: bool = True
    cfg_skip_tracks: bool = True
    cfg_skippage_secs: int = 0
    last_played_track_id: str | None = None
    removed_playlists: int = 0
    removed_collection: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


@dataclass
class SpotifyCredential:
    """OAuth token pair; at most one per user."""

    user_id: str
    access_token: str
    refresh_token: str
    expires_at: datetime
    suspend_until: datetime = field(default_factory=lambda: datetime.now(UTC))

    def expires_within(self, now: datetime, seconds: int) -> bool:
        """True when the access token is (nearly) expired."""
        return (self.expires_at - now).total_seconds() <= seconds


@dataclass(frozen=True)
class ProfanityCheckJob:
    """Unit of work for the profanity check queue."""

    track: ShortTrack
    user_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"track": self.track.to_dict(), "user_id": self.user_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProfanityCheckJob":
        return cls(track=ShortTrack.from_dict(data["track"]), user_id=str(data["user_id"]))


# Listen, CheckReport is what one scheduler tick produces. It's returned as a value
# (and kept as "last report" for the health endpoint) - there's no global health state.
@dataclass(frozen=True)
class CheckReport:
    """Telemetry for one scheduler tick."""

    max_process_time: float
    users_process_time: float
    users_count: int
    users_checked: int
    parallel_count: int
    lagging: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_process_time": round(self.max_process_time, 4),
            "users_process_time": round(self.users_process_time, 4),
            "users_count": self.users_count,
            "users_checked": self.users_checked,
            "parallel_count": self.parallel_count,
            "lagging": self.lagging,
        }


__all__ = [
    "CheckReport",
    "Confidence",
    "CurrentlyPlaying",
    "LyricsProvider",
    "LyricsSearchResult",
    "NotPlaying",
    "NotPlayingReason",
    "Playing",
    "PlayingContext",
    "PlayingContextKind",
    "ProfanityCheckJob",
    "ShortTrack",
    "SpotifyCredential",
    "TrackStatus",
    "User",
    "UserStatus",
]
