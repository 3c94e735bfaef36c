"""Exceptions raised by the tagging pipeline."""
from uuid import UUID


class TaggingError(Exception):
    """Base class for every error that fails a tagging job."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class MalformedJobPayloadError(TaggingError):
    """Raised when a delivered job does not carry a valid tagging request."""

    def __init__(self, job_id: str, detail: str) -> None:
        self.job_id = job_id
        super().__init__(f"[tagging][{job_id}] Got malformed job request: {detail}")


class BookmarkNotFoundError(TaggingError):
    """Raised when the bookmark named by a job no longer exists."""

    def __init__(self, bookmark_id: UUID) -> None:
        self.bookmark_id = bookmark_id
        super().__init__(f"Bookmark with id {bookmark_id} was not found")


class EmptyContentError(TaggingError):
    """Raised when a link bookmark has neither a description nor content to tag from."""

    def __init__(self, bookmark_id: UUID) -> None:
        self.bookmark_id = bookmark_id
        super().__init__(f"No content found for link '{bookmark_id}'. Skipping ...")


class UnsupportedContentError(TaggingError):
    """Raised when a bookmark's content variant cannot be turned into a prompt."""

    def __init__(self, bookmark_id: UUID, content_type: str) -> None:
        self.bookmark_id = bookmark_id
        self.content_type = content_type
        super().__init__(f"Unknown bookmark type '{content_type}' for bookmark {bookmark_id}")


class ProviderCallError(TaggingError):
    """Raised when the completion provider cannot be reached or times out."""

    def __init__(self, job_id: str, detail: str) -> None:
        self.job_id = job_id
        super().__init__(f"[tagging][{job_id}] Completion provider call failed: {detail}")


class MalformedResponseError(TaggingError):
    """Raised when the provider returns no content or content of the wrong shape."""

    def __init__(self, job_id: str, detail: str) -> None:
        self.job_id = job_id
        super().__init__(f"[tagging][{job_id}] Failed to parse JSON response from provider: {detail}")


class PersistenceError(TaggingError):
    """Raised when the store is unavailable or rejects a write the upserts don't cover."""

    def __init__(self, bookmark_id: UUID, detail: str) -> None:
        self.bookmark_id = bookmark_id
        super().__init__(f"Database error while tagging bookmark {bookmark_id}: {detail}")
