"""
Job queue interface and its Redis list implementation.

Jobs move through three lists per queue:

    queue:<name>:waiting  ->  queue:<name>:active  ->  (removed) | queue:<name>:failed

dequeue() atomically moves a job from waiting to active (BLMOVE), so a job
taken by a worker that dies stays visible in the active list instead of
vanishing. Retry and backoff are not handled here.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from redis.asyncio import Redis
from uuid6 import uuid7

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Job:
    """A delivered job: its id, the queue it came from and its payload."""

    id: str
    queue: str
    payload: Any
    # Exact bytes read from Redis; needed to remove the entry from the active list
    raw: str = field(default="", repr=False, compare=False)


class JobQueue(Protocol):
    """What the tagging worker needs from a queue engine."""

    name: str

    async def enqueue(self, payload: dict[str, Any]) -> str:
        """Add a job and return its id."""
        ...

    async def dequeue(self, timeout: float) -> Job | None:
        """Wait up to timeout seconds for the next job."""
        ...

    async def complete(self, job: Job) -> None:
        """Mark a job as completed."""
        ...

    async def fail(self, job: Job, error: str) -> None:
        """Mark a job as failed."""
        ...


class RedisJobQueue:
    """JobQueue backed by Redis lists."""

    def __init__(self, redis: Redis, name: str) -> None:
        self._redis = redis
        self.name = name

    @property
    def waiting_key(self) -> str:
        return f"queue:{self.name}:waiting"

    @property
    def active_key(self) -> str:
        return f"queue:{self.name}:active"

    @property
    def failed_key(self) -> str:
        return f"queue:{self.name}:failed"

    async def enqueue(self, payload: dict[str, Any]) -> str:
        """Push a job onto the waiting list."""
        job_id = str(uuid7())
        await self._redis.lpush(
            self.waiting_key,
            json.dumps({"id": job_id, "payload": payload}),
        )
        logger.debug("Enqueued job %s on %s", job_id, self.name)
        return job_id

    async def dequeue(self, timeout: float) -> Job | None:
        """Move the oldest waiting job to the active list and return it."""
        raw = await self._redis.blmove(
            self.waiting_key,
            self.active_key,
            timeout,
            src="RIGHT",
            dest="LEFT",
        )
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            envelope = json.loads(raw)
            job_id = str(envelope["id"])
            payload = envelope.get("payload")
        except (json.JSONDecodeError, KeyError, TypeError):
            # Keep the entry; the handler will fail it as a malformed payload
            logger.warning("Unreadable job envelope on %s: %r", self.name, raw)
            return Job(id="unknown", queue=self.name, payload=None, raw=raw)
        return Job(id=job_id, queue=self.name, payload=payload, raw=raw)

    async def complete(self, job: Job) -> None:
        """Drop a finished job from the active list."""
        await self._redis.lrem(self.active_key, 1, job.raw)

    async def fail(self, job: Job, error: str) -> None:
        """Move a failed job from the active list to the failed list with its error."""
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.lrem(self.active_key, 1, job.raw)
            pipe.lpush(
                self.failed_key,
                json.dumps({"id": job.id, "payload": job.payload, "error": error}),
            )
            await pipe.execute()
