"""Bookmark models: the bookmark itself plus its link or text content."""
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text, false
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.tag import tags_on_bookmarks

if TYPE_CHECKING:
    from models.tag import Tag
    from models.user import User


class TaggingStatus(StrEnum):
    """Outcome of the most recently completed tagging job for a bookmark."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class Bookmark(Base, UUIDv7Mixin, TimestampMixin):
    """
    Bookmark model - owns exactly one content row (link or text).

    tagging_status is written only by the tagging status hooks; everything else
    here belongs to the CRUD layer.
    """

    __tablename__ = "bookmarks"

    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    favourited: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(),
    )
    archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(),
    )
    tagging_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TaggingStatus.PENDING.value,
        server_default=TaggingStatus.PENDING.value,
    )

    user: Mapped["User"] = relationship(back_populates="bookmarks")
    link: Mapped["BookmarkLink"] = relationship(
        back_populates="bookmark",
        cascade="all, delete-orphan",
        uselist=False,
    )
    text: Mapped["BookmarkText"] = relationship(
        back_populates="bookmark",
        cascade="all, delete-orphan",
        uselist=False,
    )
    tags: Mapped[list["Tag"]] = relationship(
        secondary=tags_on_bookmarks,
        order_by="Tag.name",
        viewonly=True,
    )


class BookmarkLink(Base):
    """Link content - shares its primary key with the owning bookmark."""

    __tablename__ = "bookmark_links"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Extracted page text, filled in by the crawler
    content: Mapped[str | None] = mapped_column(Text, nullable=True)

    bookmark: Mapped[Bookmark] = relationship(back_populates="link")


class BookmarkText(Base):
    """Text snippet content - shares its primary key with the owning bookmark."""

    __tablename__ = "bookmark_texts"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)

    bookmark: Mapped[Bookmark] = relationship(back_populates="text")
