"""Exception hierarchy for the diagnostic sink."""

from __future__ import annotations


class SinkError(Exception):
    """Base class for all sink errors."""


class AppendError(SinkError):
    """Local disk write failed; the record is dropped."""


class RotationError(SinkError):
    """A new segment file could not be created; the old segment stays active."""


class ReclaimError(SinkError):
    """A retired writer could not be closed; retried on the next cycle."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"failed to close retired segment {path}: {cause}")
        self.path = path
        self.cause = cause


class UploadError(SinkError):
    """A single segment upload failed."""

    def __init__(self, path: str, object_name: str, cause: BaseException) -> None:
        super().__init__(f"failed to upload {path} as {object_name}: {cause}")
        self.path = path
        self.object_name = object_name
        self.cause = cause


class SinkStateError(SinkError):
    """Operation not allowed in the current sink state."""


class SegmentClosedError(SinkError):
    """Write attempted on a segment writer that is already closed."""


__all__ = [
    "SinkError",
    "AppendError",
    "RotationError",
    "ReclaimError",
    "UploadError",
    "SinkStateError",
    "SegmentClosedError",
]
