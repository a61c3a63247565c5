"""Diagnostic sink: event callback, background monitor and upload handoff."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional, Protocol, Sequence

from benchsink.config.config import SinkConfig
from benchsink.monitoring.metrics import EVENTS_DROPPED
from benchsink.sink.errors import AppendError, SinkStateError
from benchsink.sink.models import SinkState, UploadReport
from benchsink.sink.monitor import RotationMonitor
from benchsink.sink.upload import StorageBackend, UploadCoordinator
from benchsink.sink.writer import RotatingWriter
from benchsink.utils.logging import get_logger

logger = get_logger(__name__)

COLUMN_SEPARATOR = " ; "

EventCallback = Callable[[Sequence[Any]], None]


class EventSource(Protocol):
    def subscribe(self, callback: EventCallback) -> None:
        """Deliver every emitted event payload to `callback`, from any thread."""


def format_record(payload: Sequence[Any], columns: Sequence[int]) -> bytes:
    """Render the configured payload columns as one `a ; b` line."""
    return COLUMN_SEPARATOR.join(str(payload[col]) for col in columns).encode("utf-8")


class DiagnosticSink:
    """
    Captures latency events into rotating local segments and uploads them
    at the end of a run.

    Lifecycle: RECORDING -> DRAINING (`flush`) -> UPLOADED (`upload`).
    The event callback never raises into producer threads: failed or
    malformed events are logged and dropped.
    """

    def __init__(
        self,
        config: SinkConfig,
        storage: StorageBackend,
        source: Optional[EventSource] = None,
    ) -> None:
        self.config = config
        self.writer = RotatingWriter(config.work_dir, config.base_name)
        self.monitor = RotationMonitor(
            self.writer,
            max_bytes=config.max_segment_bytes,
            interval_seconds=config.check_interval_seconds,
            reclaim_interval_seconds=config.effective_reclaim_interval,
        )
        self.coordinator = UploadCoordinator(
            storage,
            work_dir=config.work_dir,
            base_name=config.base_name,
            host_id=config.host_id,
            prefix=config.s3_prefix,
            writer=self.writer,
        )
        self._state = SinkState.RECORDING
        self._state_lock = threading.Lock()
        self._report: Optional[UploadReport] = None
        self._uploading = False

        if source is not None:
            source.subscribe(self.on_event)

    @property
    def state(self) -> SinkState:
        return self._state

    @property
    def report(self) -> Optional[UploadReport]:
        return self._report

    def on_event(self, payload: Sequence[Any]) -> None:
        if self._state is not SinkState.RECORDING:
            EVENTS_DROPPED.labels(reason="not_recording").inc()
            return
        try:
            record = format_record(payload, self.config.payload_columns)
        except (IndexError, KeyError, TypeError, UnicodeEncodeError) as exc:
            EVENTS_DROPPED.labels(reason="malformed").inc()
            logger.warning("event_dropped", reason="malformed", error=str(exc))
            return
        try:
            self.writer.append(record)
        except AppendError as exc:
            EVENTS_DROPPED.labels(reason="append_failed").inc()
            logger.error("append_failed", exc_info=exc)

    async def start(self) -> None:
        if self._state is not SinkState.RECORDING:
            raise SinkStateError(f"cannot start sink in state {self._state.value}")
        await self.monitor.start()
        logger.info(
            "sink_started",
            work_dir=str(self.config.work_dir),
            base_name=self.config.base_name,
            max_segment_bytes=self.config.max_segment_bytes,
        )

    async def flush(self) -> None:
        """Stop the monitor and close every writer. Idempotent while draining."""
        with self._state_lock:
            if self._state is SinkState.UPLOADED:
                raise SinkStateError("sink already uploaded")
            if self._state is SinkState.DRAINING:
                return
            self._state = SinkState.DRAINING
        await self.monitor.stop()
        self.coordinator.flush()

    async def upload(self) -> UploadReport:
        with self._state_lock:
            if self._state is not SinkState.DRAINING:
                raise SinkStateError(
                    f"upload requires a flushed sink (state: {self._state.value})"
                )
            if self._uploading:
                raise SinkStateError("upload already in progress")
            self._uploading = True
        try:
            report = await self.coordinator.upload_all()
        except BaseException:
            with self._state_lock:
                self._uploading = False
            raise
        with self._state_lock:
            self._state = SinkState.UPLOADED
            self._report = report
        return report

    async def flush_and_upload(self) -> UploadReport:
        await self.flush()
        return await self.upload()


__all__ = ["DiagnosticSink", "EventSource", "format_record", "COLUMN_SEPARATOR"]
