"""
Monitoring utilities for benchsink.
"""

from benchsink.monitoring.metrics import (
    ACTIVE_SEGMENT_BYTES,
    APPEND_ERRORS,
    EVENTS_DROPPED,
    RECLAIM_ERRORS,
    RECORDS_APPENDED,
    RETIRED_WRITERS,
    ROTATION_ERRORS,
    ROTATIONS,
    SEGMENTS_UPLOADED,
    UPLOAD_DURATION,
)

__all__ = [
    "RECORDS_APPENDED",
    "APPEND_ERRORS",
    "EVENTS_DROPPED",
    "ROTATIONS",
    "ROTATION_ERRORS",
    "RECLAIM_ERRORS",
    "RETIRED_WRITERS",
    "ACTIVE_SEGMENT_BYTES",
    "SEGMENTS_UPLOADED",
    "UPLOAD_DURATION",
]
