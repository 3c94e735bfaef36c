"""Pydantic schemas for bookmarks and their content variants."""
import re
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

# Tag format for user-entered tags: lowercase alphanumeric with hyphens
# (e.g., 'machine-learning'). Provider-inferred tags are stored as returned.
TAG_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize and validate a list of user-entered tags.

    Args:
        tags: List of tag strings to validate.

    Returns:
        List of normalized tags (lowercase, trimmed), with empty strings filtered out.

    Raises:
        ValueError: If any tag has invalid format.
    """
    normalized = []
    for tag in tags:
        normalized_tag = tag.lower().strip()
        if not normalized_tag:
            continue
        if not TAG_PATTERN.match(normalized_tag):
            raise ValueError(
                f"Invalid tag format: '{normalized_tag}'. "
                "Use lowercase letters, numbers, and hyphens only (e.g., 'machine-learning').",
            )
        normalized.append(normalized_tag)
    return normalized


class LinkContent(BaseModel):
    """Content of a link bookmark."""

    model_config = ConfigDict(frozen=True)

    type: Literal["link"] = "link"
    url: str
    title: str | None = None
    description: str | None = None
    content: str | None = None


class TextContent(BaseModel):
    """Content of a text snippet bookmark."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


BookmarkContent = Annotated[LinkContent | TextContent, Field(discriminator="type")]


class TaggableBookmark(BaseModel):
    """Read-only view of a bookmark with the content needed to infer tags."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    user_id: UUID
    content: BookmarkContent


class LinkBookmarkCreate(BaseModel):
    """Schema for creating a link bookmark."""

    type: Literal["link"] = "link"
    url: HttpUrl
    title: str | None = None
    description: str | None = None
    content: str | None = None


class TextBookmarkCreate(BaseModel):
    """Schema for creating a text bookmark."""

    type: Literal["text"] = "text"
    text: str = Field(..., min_length=1)

    @field_validator("text")
    @classmethod
    def reject_blank_text(cls, v: str) -> str:
        """Whitespace-only snippets have nothing to tag or read."""
        if not v.strip():
            raise ValueError("Text cannot be blank")
        return v


BookmarkCreate = Annotated[LinkBookmarkCreate | TextBookmarkCreate, Field(discriminator="type")]
