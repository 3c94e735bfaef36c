"""Record the outcome of tagging jobs on their bookmarks."""
import logging
from typing import Any

from sqlalchemy import update

from db.session import SessionFactory, session_scope
from models.bookmark import Bookmark, TaggingStatus
from schemas.tagging import TaggingRequest

logger = logging.getLogger(__name__)


async def mark_tagging_status(
    session_factory: SessionFactory,
    job_payload: Any,
    status: TaggingStatus,
) -> bool:
    """
    Set a bookmark's tagging status from a finished job's own payload.

    The bookmark id is read from the payload rather than from pipeline state, so
    the update works no matter how far the job got. Any error here (bad payload,
    bookmark deleted, database down) is logged and swallowed so that it never
    replaces the job's real outcome.

    The last job to finish wins.

    Args:
        session_factory: Opens the session used for the update.
        job_payload: The payload the job was delivered with.
        status: SUCCESS when the job completed, FAILURE when it raised.

    Returns:
        True if a bookmark row was updated.
    """
    if not job_payload:
        return False
    try:
        request = TaggingRequest.model_validate(job_payload)
        async with session_scope(session_factory) as db:
            result = await db.execute(
                update(Bookmark)
                .where(Bookmark.id == request.bookmark_id)
                .values(tagging_status=status.value),
            )
        return result.rowcount > 0
    except Exception:
        logger.warning(
            "Something went wrong when marking the tagging status as %s",
            status.value,
            exc_info=True,
        )
        return False


async def on_tagging_completed(session_factory: SessionFactory, job_payload: Any) -> bool:
    """Completion hook: the job returned normally."""
    return await mark_tagging_status(session_factory, job_payload, TaggingStatus.SUCCESS)


async def on_tagging_failed(session_factory: SessionFactory, job_payload: Any) -> bool:
    """Failure hook: the job raised."""
    return await mark_tagging_status(session_factory, job_payload, TaggingStatus.FAILURE)
