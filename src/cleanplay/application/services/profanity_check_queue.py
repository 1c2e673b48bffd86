"""Redis list carrying ProfanityCheckJobs from the scheduler to the lyrics consumer.

Wire format (one JSON object per list element):

    {"track": {...ShortTrack.to_dict()}, "user_id": "<id>"}

Delivery is at-least-once and jobs are idempotent (checking the same track twice
only costs a second lyrics lookup), so neither side needs acknowledgements.
"""

import json
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from cleanplay.domain.entities import ProfanityCheckJob
from cleanplay.domain.exceptions import ValidationException
from cleanplay.infrastructure.cache import RedisKeys

logger = logging.getLogger(__name__)


class ProfanityCheckQueue:
    """FIFO of profanity check jobs."""

    def __init__(self, redis: Redis, keys: RedisKeys | None = None) -> None:
        self._redis = redis
        self._key = (keys or RedisKeys()).profanity_queue

    # Hey future me - submit() runs inside the playback check, i.e. on the scheduler's hot
    # path. It must never raise and never retry: one RPUSH, log if it fails, move on. The
    # worst case is one track that doesn't get a lyrics check.
    async def submit(self, job: ProfanityCheckJob) -> bool:
        """Push a job. Returns False (and logs) when the push failed."""
        try:
            await self._redis.rpush(self._key, json.dumps(job.to_dict()))
        except RedisError as e:
            logger.error("Failed to enqueue profanity check for user %s: %s", job.user_id, e)
            return False
        logger.debug("Queued profanity check of %s for user %s", job.track.id, job.user_id)
        return True

    async def pop(self, timeout: int) -> ProfanityCheckJob | None:
        """
        Block up to `timeout` seconds for the next job.

        Returns:
            The job, or None when the timeout passed without one

        Raises:
            ValidationException: The payload was not a valid job (it is consumed anyway)
        """
        item = await self._redis.blpop([self._key], timeout=timeout)
        if item is None:
            return None
        _key, raw = item
        return self.decode(raw)

    @staticmethod
    def decode(raw: str | bytes) -> ProfanityCheckJob:
        try:
            return ProfanityCheckJob.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            raise ValidationException(f"Malformed profanity check job: {e}") from e

    async def size(self) -> int:
        return int(await self._redis.llen(self._key))
