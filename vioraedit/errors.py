"""Error taxonomy for vioraedit.

Every error is local to a single compile or invocation; none of them
leave the edit state or the history half-updated.
"""

from typing import Optional


class EditorError(Exception):
    """Base class for all vioraedit errors."""


class ValidationError(EditorError):
    """An EditState violates one of its invariants.

    Raised by the compiler before any process is started. This is a
    caller bug and is never retried.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class SourceUnavailable(EditorError):
    """The input reference could not be resolved to a readable file."""

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Source unavailable ({reference}): {reason}")


class EngineFailure(EditorError):
    """ffmpeg exited non-zero or produced no usable output."""

    def __init__(
        self,
        message: str,
        return_code: Optional[int] = None,
        stderr: str = "",
    ):
        self.message = message
        self.return_code = return_code
        self.stderr = stderr
        super().__init__(message)


class Cancelled(EditorError):
    """The invocation was cancelled by the user."""
