"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.tag import AttachedBy, Tag, tags_on_bookmarks  # Must be before bookmark due to import
from models.bookmark import Bookmark, BookmarkLink, BookmarkText, TaggingStatus
from models.user import User

__all__ = [
    "AttachedBy",
    "Base",
    "Bookmark",
    "BookmarkLink",
    "BookmarkText",
    "Tag",
    "TaggingStatus",
    "TimestampMixin",
    "UUIDv7Mixin",
    "User",
    "tags_on_bookmarks",
]
