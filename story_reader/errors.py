"""Error taxonomy for story-service failures.

The HTTP client translates transport and status errors into these types;
the session controller catches them at its boundary and attaches them to
the view instead of letting them propagate to the display layer.
"""

from __future__ import annotations


class StoryServiceError(RuntimeError):
    """Base class. Raised directly for unexpected responses."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFound(StoryServiceError):
    """The story or chapter does not exist or is not visible to the caller."""


class Unauthorized(StoryServiceError):
    """The session token is missing, invalid or expired."""


class GenerationFailed(StoryServiceError):
    """The backend failed to generate content. Retryable by the user."""


class Conflict(StoryServiceError):
    """An advance is already being processed server-side for this story."""


class IntegrityViolation(StoryServiceError):
    """The server returned a chapter whose number breaks the sequence."""


class ServiceUnavailable(StoryServiceError):
    """The story API could not be reached or failed on a read."""
