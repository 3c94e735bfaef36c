"""Service layer for tag persistence: create-or-reuse tags and attach them to bookmarks."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from models.tag import AttachedBy, Tag, tags_on_bookmarks


async def get_or_create_tag_ids(
    db: AsyncSession,
    user_id: UUID,
    tag_names: list[str],
) -> list[UUID]:
    """
    Resolve tag names to tag ids, creating any tags the user doesn't have yet.

    Safe under concurrent writers: the insert ignores rows that violate the
    (user_id, name) unique constraint, and ids are then read back by name. Two
    jobs racing on the same name both end up with the single persisted row.

    Names are used as given; no case folding or trimming is applied here.

    Args:
        db: Database session.
        user_id: User ID to scope tags.
        tag_names: Tag names, possibly with duplicates.

    Returns:
        One id per distinct name, in first-seen order of the input.
    """
    if not tag_names:
        return []

    distinct_names = list(dict.fromkeys(tag_names))

    # Sorted insert order keeps concurrent multi-row inserts from deadlocking
    await db.execute(
        insert(Tag)
        .values([{"user_id": user_id, "name": name} for name in sorted(distinct_names)])
        .on_conflict_do_nothing(index_elements=[Tag.user_id, Tag.name]),
    )

    result = await db.execute(
        select(Tag.name, Tag.id).where(
            Tag.user_id == user_id,
            Tag.name.in_(distinct_names),
        ),
    )
    ids_by_name = {row.name: row.id for row in result}
    return [ids_by_name[name] for name in distinct_names]


async def attach_tags(
    db: AsyncSession,
    bookmark_id: UUID,
    tag_ids: list[UUID],
    attached_by: AttachedBy,
) -> None:
    """
    Link tags to a bookmark, ignoring pairs that are already linked.

    Re-running with the same ids is a no-op, so a retried job converges to the
    same attachments. An existing attachment keeps its original provenance.

    Args:
        db: Database session.
        bookmark_id: Bookmark to attach tags to.
        tag_ids: Tag ids to attach.
        attached_by: Provenance recorded on newly created attachments.
    """
    if not tag_ids:
        return

    # Sorted for the same reason as the tag insert: jobs attaching the same tags
    # to one bookmark in different orders would otherwise deadlock
    await db.execute(
        insert(tags_on_bookmarks)
        .values(
            [
                {
                    "bookmark_id": bookmark_id,
                    "tag_id": tag_id,
                    "attached_by": attached_by.value,
                }
                for tag_id in sorted(set(tag_ids))
            ],
        )
        .on_conflict_do_nothing(
            index_elements=[tags_on_bookmarks.c.bookmark_id, tags_on_bookmarks.c.tag_id],
        ),
    )


async def get_bookmark_tags(
    db: AsyncSession,
    bookmark_id: UUID,
) -> list[tuple[str, AttachedBy]]:
    """
    Get the tags attached to a bookmark.

    Returns:
        (name, attached_by) pairs sorted by name.
    """
    result = await db.execute(
        select(Tag.name, tags_on_bookmarks.c.attached_by)
        .join(tags_on_bookmarks, Tag.id == tags_on_bookmarks.c.tag_id)
        .where(tags_on_bookmarks.c.bookmark_id == bookmark_id)
        .order_by(Tag.name.asc()),
    )
    return [(row.name, AttachedBy(row.attached_by)) for row in result]
