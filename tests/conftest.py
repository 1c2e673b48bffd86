"""Shared fixtures: an in-process Redis double, a throwaway SQLite database, sample data."""

import fnmatch
import math
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from redis.exceptions import ResponseError

from cleanplay.config import DatabaseSettings
from cleanplay.domain.entities import ShortTrack, SpotifyCredential, User
from cleanplay.infrastructure.persistence import Database
from cleanplay.infrastructure.persistence.repositories import (
    SpotifyAuthRepository,
    UserRepository,
)


# Hey future me - FakeRedis implements exactly the commands the app uses, with the
# same return conventions as redis-py with decode_responses=True (str in, str out,
# TTL -2 for missing keys, -1 for keys without expiry). Time is a plain float you
# move forward with advance(), so window/TTL tests never sleep.
class FakeRedis:
    """Async in-memory stand-in for redis.asyncio.Redis."""

    def __init__(self) -> None:
        self.now = 0.0
        self.data: dict[str, Any] = {}
        self.expires_at: dict[str, float] = {}
        self.closed = False

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _purge(self, key: str) -> None:
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= self.now:
            self.data.pop(key, None)
            self.expires_at.pop(key, None)

    @staticmethod
    def _seconds(value: int | float | timedelta) -> float:
        if isinstance(value, timedelta):
            return value.total_seconds()
        return float(value)

    async def get(self, key: str) -> str | None:
        self._purge(key)
        value = self.data.get(key)
        if isinstance(value, list):
            raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
        return value

    async def set(
        self,
        key: str,
        value: Any,
        ex: int | timedelta | None = None,
        nx: bool = False,
    ) -> bool | None:
        self._purge(key)
        if nx and key in self.data:
            return None
        self.data[key] = str(value)
        self.expires_at.pop(key, None)
        if ex is not None:
            self.expires_at[key] = self.now + self._seconds(ex)
        return True

    async def incrby(self, key: str, amount: int) -> int:
        self._purge(key)
        try:
            value = int(self.data.get(key, 0)) + amount
        except ValueError as e:
            raise ResponseError("value is not an integer or out of range") from e
        self.data[key] = str(value)
        return value

    async def incr(self, key: str) -> int:
        return await self.incrby(key, 1)

    async def expire(self, key: str, seconds: int | timedelta) -> bool:
        self._purge(key)
        if key not in self.data:
            return False
        self.expires_at[key] = self.now + self._seconds(seconds)
        return True

    async def ttl(self, key: str) -> int:
        self._purge(key)
        if key not in self.data:
            return -2
        deadline = self.expires_at.get(key)
        if deadline is None:
            return -1
        return math.ceil(deadline - self.now)

    async def exists(self, *keys: str) -> int:
        count = 0
        for key in keys:
            self._purge(key)
            count += key in self.data
        return count

    async def delete(self, *keys: str) -> int:
        count = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                count += 1
            self.expires_at.pop(key, None)
        return count

    async def rpush(self, key: str, *values: Any) -> int:
        items = self.data.setdefault(key, [])
        items.extend(str(value) for value in values)
        return len(items)

    async def blpop(self, keys: list[str], timeout: int = 0) -> tuple[str, str] | None:
        # Never blocks: an empty queue behaves like an expired timeout.
        for key in keys:
            items = self.data.get(key)
            if items:
                value = items.pop(0)
                if not items:
                    del self.data[key]
                return key, value
        return None

    async def llen(self, key: str) -> int:
        return len(self.data.get(key, []))

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True

    def keys_matching(self, pattern: str) -> list[str]:
        """Sync helper for assertions."""
        return sorted(key for key in self.data if fnmatch.fnmatch(key, pattern))


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Fresh Redis double per test."""
    return FakeRedis()


# Listen future me - a FILE database, not :memory:. With :memory: every pooled
# connection gets its own empty database, and the workers open several sessions
# concurrently.
@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Database with all tables created."""
    db = Database(DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'cleanplay.db'}"))
    await db.create_tables()
    yield db
    await db.close()


SeedUser = Callable[..., Awaitable[User]]


@pytest.fixture
def seed_user(database: Database) -> SeedUser:
    """Factory inserting a user with (by default) a valid, pollable credential."""

    async def _seed(
        user_id: str = "user-1",
        *,
        with_credential: bool = True,
        access_token: str = "access-token",
        refresh_token: str = "refresh-token",
        expires_at: datetime | None = None,
        suspend_until: datetime | None = None,
        **user_fields: Any,
    ) -> User:
        now = datetime.now(UTC)
        user = User(id=user_id, **user_fields)
        async with database.session_scope() as session:
            await UserRepository(session).add(user)
            if with_credential:
                await SpotifyAuthRepository(session).save(
                    SpotifyCredential(
                        user_id=user_id,
                        access_token=access_token,
                        refresh_token=refresh_token,
                        expires_at=expires_at or now + timedelta(hours=1),
                        suspend_until=suspend_until or now - timedelta(minutes=1),
                    )
                )
        return user

    return _seed


@pytest.fixture
def track() -> ShortTrack:
    """A well-known track."""
    return ShortTrack(
        id="4uLU6hMCjMI75M1A2tKUQC",
        name="Never Gonna Give You Up",
        url="https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC",
        duration_secs=213,
        artist_names=["Rick Astley"],
        artist_ids=["0gxyHStUsqpMadRV0Di1Qt"],
        album_name="Whenever You Need Somebody",
        album_url="https://open.spotify.com/album/6N9PS4QXF1D0OWPk0Sxtb4",
    )
