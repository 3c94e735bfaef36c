"""Service layer for the bookmark operations the tagging pipeline relies on."""
import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.queue import JobQueue
from models.bookmark import Bookmark, BookmarkLink, BookmarkText, TaggingStatus
from models.tag import AttachedBy
from schemas.bookmark import (
    BookmarkCreate,
    LinkBookmarkCreate,
    LinkContent,
    TaggableBookmark,
    TextContent,
    validate_and_normalize_tags,
)
from schemas.tagging import TaggingRequest
from services.exceptions import BookmarkNotFoundError, UnsupportedContentError
from services.tag_service import attach_tags, get_or_create_tag_ids

logger = logging.getLogger(__name__)


async def get_taggable_bookmark(db: AsyncSession, bookmark_id: UUID) -> TaggableBookmark | None:
    """
    Load a bookmark with its link or text content.

    Returns:
        The bookmark as a TaggableBookmark, or None if it doesn't exist.

    Raises:
        UnsupportedContentError: If the bookmark has neither a link nor a text row.
    """
    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.link), selectinload(Bookmark.text))
        .where(Bookmark.id == bookmark_id),
    )
    bookmark = result.scalar_one_or_none()
    if bookmark is None:
        return None

    if bookmark.link is not None:
        content = LinkContent(
            url=bookmark.link.url,
            title=bookmark.link.title,
            description=bookmark.link.description,
            content=bookmark.link.content,
        )
    elif bookmark.text is not None:
        content = TextContent(text=bookmark.text.text)
    else:
        raise UnsupportedContentError(bookmark.id, "none")

    return TaggableBookmark(id=bookmark.id, user_id=bookmark.user_id, content=content)


async def create_bookmark(
    db: AsyncSession,
    user_id: UUID,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a link or text bookmark awaiting tagging.

    Note: Does not commit, and does not enqueue the tagging job. Call
    enqueue_tagging() after the commit so the worker can see the row.
    """
    bookmark = Bookmark(user_id=user_id, tagging_status=TaggingStatus.PENDING.value)
    if isinstance(data, LinkBookmarkCreate):
        bookmark.link = BookmarkLink(
            url=str(data.url),
            title=data.title,
            description=data.description,
            content=data.content,
        )
    else:
        bookmark.text = BookmarkText(text=data.text)
    db.add(bookmark)
    await db.flush()
    return bookmark


async def enqueue_tagging(queue: JobQueue, bookmark_id: UUID) -> str:
    """Submit a tagging job for a bookmark and return the job id."""
    job_id = await queue.enqueue(TaggingRequest(bookmark_id=bookmark_id).to_payload())
    logger.info("Queued tagging job %s for bookmark %s", job_id, bookmark_id)
    return job_id


async def request_retagging(
    db: AsyncSession,
    queue: JobQueue,
    bookmark_id: UUID,
) -> str:
    """
    Reset a bookmark's tagging status to pending and queue it again.

    Tags already attached are kept; the new job only adds to them.

    Note: Commits, so that the job never runs against the stale status.

    Raises:
        BookmarkNotFoundError: If the bookmark doesn't exist.
    """
    result = await db.execute(
        update(Bookmark)
        .where(Bookmark.id == bookmark_id)
        .values(tagging_status=TaggingStatus.PENDING.value),
    )
    if result.rowcount == 0:
        raise BookmarkNotFoundError(bookmark_id)
    await db.commit()
    return await enqueue_tagging(queue, bookmark_id)


async def attach_tags_by_name(
    db: AsyncSession,
    bookmark_id: UUID,
    user_id: UUID,
    tag_names: list[str],
    attached_by: AttachedBy = AttachedBy.USER,
) -> list[UUID]:
    """
    Attach user-entered tags to a bookmark, creating tags as needed.

    Names are normalized (lowercase, trimmed) and validated first.

    Returns:
        Ids of the attached tags.

    Raises:
        ValueError: If a tag name has invalid format.
    """
    tag_ids = await get_or_create_tag_ids(db, user_id, validate_and_normalize_tags(tag_names))
    await attach_tags(db, bookmark_id, tag_ids, attached_by)
    return tag_ids
