"""Tag model for storing user tags."""
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, UUIDv7Mixin

if TYPE_CHECKING:
    from models.user import User


class AttachedBy(StrEnum):
    """Who attached a tag to a bookmark."""

    USER = "user"
    AI = "ai"


# Junction table for many-to-many relationship between bookmarks and tags.
# The composite primary key makes (bookmark_id, tag_id) the conflict target
# for idempotent inserts.
tags_on_bookmarks = Table(
    "tags_on_bookmarks",
    Base.metadata,
    Column(
        "bookmark_id",
        PG_UUID(as_uuid=True),
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        PG_UUID(as_uuid=True),
        ForeignKey("bookmark_tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "attached_at",
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
    ),
    Column("attached_by", String(10), nullable=False),
    # Index for lookups by tag (composite PK already indexes bookmark_id first)
    Index("ix_tags_on_bookmarks_tag_id", "tag_id"),
)


class Tag(Base, UUIDv7Mixin):
    """Tag model - stores unique tag names per user."""

    __tablename__ = "bookmark_tags"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_bookmark_tags_user_id_name"),
    )

    # id provided by UUIDv7Mixin
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
    )

    user: Mapped["User"] = relationship(back_populates="tags")