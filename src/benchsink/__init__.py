"""benchsink - rotating diagnostic sink for benchmark latency telemetry."""

__version__ = "0.1.0"

from .sink import (
    DiagnosticSink,
    RotatingWriter,
    RotationMonitor,
    Segment,
    SinkState,
    UploadCoordinator,
    UploadReport,
)

__all__ = [
    "DiagnosticSink",
    "RotatingWriter",
    "RotationMonitor",
    "UploadCoordinator",
    "Segment",
    "SinkState",
    "UploadReport",
]
