"""Tests for the profanity check job queue."""

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from cleanplay.application.services.profanity_check_queue import ProfanityCheckQueue
from cleanplay.domain.entities import ProfanityCheckJob, ShortTrack
from cleanplay.domain.exceptions import ValidationException
from cleanplay.infrastructure.cache import RedisKeys


class TestProfanityCheckQueue:
    """Test submit/pop over a Redis list."""

    @pytest.mark.asyncio
    async def test_fifo(self, fake_redis, track: ShortTrack) -> None:
        """Jobs come out in submission order."""
        queue = ProfanityCheckQueue(fake_redis)
        first = ProfanityCheckJob(track=track, user_id="u1")
        second = ProfanityCheckJob(track=track, user_id="u2")

        assert await queue.submit(first) is True
        assert await queue.submit(second) is True
        assert await queue.size() == 2

        assert await queue.pop(timeout=1) == first
        assert await queue.pop(timeout=1) == second
        assert await queue.pop(timeout=1) is None

    @pytest.mark.asyncio
    async def test_wire_format(self, fake_redis, track: ShortTrack) -> None:
        """Each list element is one JSON object with track and user_id."""
        queue = ProfanityCheckQueue(fake_redis)

        await queue.submit(ProfanityCheckJob(track=track, user_id="u1"))

        raw = fake_redis.data[RedisKeys().profanity_queue][0]
        payload = json.loads(raw)
        assert payload["user_id"] == "u1"
        assert payload["track"]["id"] == track.id
        assert payload["track"]["artist_names"] == ["Rick Astley"]

    @pytest.mark.asyncio
    async def test_malformed_job(self, fake_redis) -> None:
        """A malformed element is consumed and reported as a ValidationException."""
        queue = ProfanityCheckQueue(fake_redis)
        await fake_redis.rpush(RedisKeys().profanity_queue, '{"user_id": "u1"}')

        with pytest.raises(ValidationException):
            await queue.pop(timeout=1)

        assert await queue.size() == 0

    @pytest.mark.parametrize("raw", ["not json", "[]", '{"track": {"name": "x"}, "user_id": "u"}'])
    def test_decode_rejects(self, raw: str) -> None:
        """Garbage never decodes into a job."""
        with pytest.raises(ValidationException):
            ProfanityCheckQueue.decode(raw)

    @pytest.mark.asyncio
    async def test_submit_never_raises(self, track: ShortTrack) -> None:
        """A Redis outage costs one job, not the playback check."""
        redis = AsyncMock()
        redis.rpush.side_effect = RedisConnectionError("down")
        queue = ProfanityCheckQueue(redis)

        assert await queue.submit(ProfanityCheckJob(track=track, user_id="u1")) is False
