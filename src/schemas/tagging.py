"""Pydantic schemas for tagging jobs and provider responses."""
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TaggingRequest(BaseModel):
    """Payload of a tagging job: the bookmark to tag."""

    model_config = ConfigDict(populate_by_name=True)

    bookmark_id: UUID = Field(..., alias="bookmarkId")

    def to_payload(self) -> dict[str, str]:
        """Serialize to the queue wire shape."""
        return {"bookmarkId": str(self.bookmark_id)}


class SearchIndexRequest(BaseModel):
    """Payload of a search indexing job emitted after tags change."""

    model_config = ConfigDict(populate_by_name=True)

    bookmark_id: UUID = Field(..., alias="bookmarkId")
    type: Literal["index"] = "index"

    def to_payload(self) -> dict[str, str]:
        """Serialize to the queue wire shape."""
        return {"bookmarkId": str(self.bookmark_id), "type": self.type}


class TagInferenceResponse(BaseModel):
    """Structured JSON body the completion provider must return."""

    tags: list[str]
