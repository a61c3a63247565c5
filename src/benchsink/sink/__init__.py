"""
Rotating diagnostic sink: capture, rotation, reclaim and upload.
"""

from .errors import (
    AppendError,
    ReclaimError,
    RotationError,
    SinkError,
    SinkStateError,
    UploadError,
)
from .listener import DiagnosticSink, EventSource
from .models import Segment, SegmentInfo, SinkState, UploadReport
from .monitor import RotationMonitor
from .upload import StorageBackend, UploadCoordinator
from .writer import RotatingWriter, SegmentWriter

__all__ = [
    "DiagnosticSink",
    "EventSource",
    "RotatingWriter",
    "SegmentWriter",
    "RotationMonitor",
    "UploadCoordinator",
    "StorageBackend",
    "Segment",
    "SegmentInfo",
    "SinkState",
    "UploadReport",
    "SinkError",
    "AppendError",
    "RotationError",
    "ReclaimError",
    "UploadError",
    "SinkStateError",
]
