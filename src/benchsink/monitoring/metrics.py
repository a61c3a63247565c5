"""Prometheus metrics for the diagnostic sink."""

from prometheus_client import Counter, Gauge, Histogram

# Capture path
RECORDS_APPENDED = Counter(
    "benchsink_records_appended_total", "Records appended to local segments"
)
APPEND_ERRORS = Counter(
    "benchsink_append_errors_total", "Local disk write failures on append"
)
EVENTS_DROPPED = Counter(
    "benchsink_events_dropped_total",
    "Events dropped by the sink callback",
    ["reason"],
)

# Rotation / reclaim
ROTATIONS = Counter("benchsink_rotations_total", "Segment rotations performed")
ROTATION_ERRORS = Counter(
    "benchsink_rotation_errors_total", "Failures creating a new segment"
)
RECLAIM_ERRORS = Counter(
    "benchsink_reclaim_errors_total", "Failures closing a retired writer"
)
RETIRED_WRITERS = Gauge(
    "benchsink_retired_writers", "Retired writers waiting to be closed"
)
ACTIVE_SEGMENT_BYTES = Gauge(
    "benchsink_active_segment_bytes",
    "Approximate size of the active segment observed by the monitor",
)

# Upload
SEGMENTS_UPLOADED = Counter(
    "benchsink_segments_uploaded_total",
    "Segment upload attempts by outcome",
    ["outcome"],
)
UPLOAD_DURATION = Histogram(
    "benchsink_upload_duration_seconds",
    "Duration of a single segment upload",
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
