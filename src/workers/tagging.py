"""
Tagging worker.

Consumes tagging jobs, infers tags for the bookmark with the completion
provider, stores and attaches them, and queues a search index refresh.

Usage:
    python -m workers.tagging

Each job goes through:
1. Validate the payload ({"bookmarkId": <uuid>})
2. Skip (successfully) when no provider credential is configured
3. Load the bookmark and its content
4. Build the prompt and ask the provider for tags
5. Create-or-reuse the tags and attach them to the bookmark (ai provenance)
6. Queue one search indexing job

process() turns the outcome into a TaggingSuccess or TaggingFailure.
handle_tagging_job() reports that result to the queue and then records the
bookmark's tagging status, deriving the bookmark from the job payload.
"""
import asyncio
import logging
import signal
from dataclasses import dataclass, field
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.config import Settings, get_settings
from core.queue import Job, JobQueue, RedisJobQueue
from core.redis import RedisClient
from db.session import SessionFactory, dispose_engine, get_session_factory, session_scope
from models.tag import AttachedBy
from schemas.tagging import SearchIndexRequest, TaggingRequest
from services.bookmark_service import get_taggable_bookmark
from services.exceptions import BookmarkNotFoundError, MalformedJobPayloadError, PersistenceError
from services.tag_inference import TagInferenceClient
from services.tag_service import attach_tags, get_or_create_tag_ids
from services.tagging_status_service import on_tagging_completed, on_tagging_failed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaggingSuccess:
    """The job completed. skipped is True when inference was not configured."""

    bookmark_id: UUID
    tags: tuple[str, ...] = ()
    skipped: bool = False
    index_job_id: str | None = None


@dataclass(frozen=True)
class TaggingFailure:
    """The job failed with error."""

    error: Exception = field(compare=False)

    @property
    def message(self) -> str:
        return str(self.error)


TaggingResult = TaggingSuccess | TaggingFailure


class TaggingWorker:
    """Runs the tagging pipeline for one job at a time (instances are safe to share)."""

    def __init__(
        self,
        session_factory: SessionFactory,
        inference_client: TagInferenceClient | None,
        index_queue: JobQueue,
    ) -> None:
        self._session_factory = session_factory
        self._inference_client = inference_client
        self._index_queue = index_queue

    async def run(self, job: Job) -> TaggingSuccess:
        """
        Run the pipeline for a job.

        Raises:
            TaggingError: Any pipeline stage failed. Writes that already landed are
                kept; they are idempotent, so a redelivered job converges.
        """
        try:
            request = TaggingRequest.model_validate(job.payload)
        except ValidationError as e:
            raise MalformedJobPayloadError(job.id, str(e)) from e
        bookmark_id = request.bookmark_id

        if self._inference_client is None:
            logger.debug("[tagging][%s] Inference is not configured, nothing to do now", job.id)
            return TaggingSuccess(bookmark_id=bookmark_id, skipped=True)

        try:
            async with self._session_factory() as db:
                bookmark = await get_taggable_bookmark(db, bookmark_id)
        except SQLAlchemyError as e:
            raise PersistenceError(bookmark_id, str(e)) from e
        if bookmark is None:
            raise BookmarkNotFoundError(bookmark_id)

        tags = await self._inference_client.infer_tags(job.id, bookmark)

        try:
            async with session_scope(self._session_factory) as db:
                tag_ids = await get_or_create_tag_ids(db, bookmark.user_id, tags)
                await attach_tags(db, bookmark_id, tag_ids, AttachedBy.AI)
        except SQLAlchemyError as e:
            raise PersistenceError(bookmark_id, str(e)) from e

        index_job_id = await self._index_queue.enqueue(
            SearchIndexRequest(bookmark_id=bookmark_id).to_payload(),
        )
        return TaggingSuccess(
            bookmark_id=bookmark_id,
            tags=tuple(tags),
            index_job_id=index_job_id,
        )

    async def process(self, job: Job) -> TaggingResult:
        """Run the pipeline and capture its outcome as a result value."""
        try:
            return await self.run(job)
        except Exception as e:
            logger.debug("[tagging][%s] Pipeline raised", job.id, exc_info=True)
            return TaggingFailure(error=e)


async def handle_tagging_job(
    worker: TaggingWorker,
    queue: JobQueue,
    session_factory: SessionFactory,
    job: Job,
) -> TaggingResult:
    """
    Process a delivered job and report its outcome.

    Success marks the job completed and sets the bookmark's status to success;
    failure marks it failed and sets the status to failure. The status is
    recorded even when the queue can't be told about the outcome. The status
    update is best-effort and never changes the result.
    """
    result = await worker.process(job)
    succeeded = isinstance(result, TaggingSuccess)
    try:
        if succeeded:
            logger.info("[tagging][%s] Completed successfully", job.id)
            await queue.complete(job)
        else:
            logger.error("[tagging][%s] tagging job failed: %s", job.id, result.message)
            await queue.fail(job, result.message)
    except Exception:
        logger.exception("[tagging][%s] Could not report job outcome to the queue", job.id)
    finally:
        if succeeded:
            await on_tagging_completed(session_factory, job.payload)
        else:
            await on_tagging_failed(session_factory, job.payload)
    return result


async def run_worker(
    settings: Settings | None = None,
    stop_event: asyncio.Event | None = None,
) -> None:
    """
    Consume tagging jobs until stop_event is set or the task is cancelled.

    Up to settings.worker_concurrency jobs run at once.
    """
    settings = settings or get_settings()
    stop_event = stop_event or asyncio.Event()

    redis_client = RedisClient(url=settings.redis_url, pool_size=settings.worker_concurrency + 2)
    await redis_client.connect()

    tagging_queue = RedisJobQueue(redis_client.client, settings.tagging_queue_name)
    index_queue = RedisJobQueue(redis_client.client, settings.search_indexing_queue_name)
    session_factory = get_session_factory()
    worker = TaggingWorker(
        session_factory=session_factory,
        inference_client=TagInferenceClient.from_settings(settings),
        index_queue=index_queue,
    )

    semaphore = asyncio.Semaphore(settings.worker_concurrency)
    in_flight: set[asyncio.Task] = set()

    async def run_one(job: Job) -> None:
        try:
            await handle_tagging_job(worker, tagging_queue, session_factory, job)
        except Exception:
            logger.exception("[tagging][%s] Unexpected error while handling job", job.id)
        finally:
            semaphore.release()

    logger.info(
        "Starting tagging worker on queue '%s' (concurrency=%d, inference=%s)",
        settings.tagging_queue_name,
        settings.worker_concurrency,
        "enabled" if settings.inference_enabled else "disabled",
    )
    try:
        while not stop_event.is_set():
            await semaphore.acquire()
            try:
                job = await tagging_queue.dequeue(settings.worker_poll_timeout_seconds)
            except BaseException:
                semaphore.release()
                raise
            if job is None:
                semaphore.release()
                continue
            task = asyncio.create_task(run_one(job))
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)
    finally:
        if in_flight:
            logger.info("Waiting for %d in-flight tagging jobs", len(in_flight))
            await asyncio.gather(*in_flight, return_exceptions=True)
        await redis_client.close()
        await dispose_engine()
        logger.info("Tagging worker stopped")


async def _serve() -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)
    await run_worker(stop_event=stop_event)


def main() -> None:
    """Entry point for running the tagging worker as a script."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logger.info("Tagging worker stopped by user")


if __name__ == "__main__":
    main()
