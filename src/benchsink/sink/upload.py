"""Drain local writers and ship completed segments to remote storage."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional, Protocol

from benchsink.monitoring.metrics import SEGMENTS_UPLOADED, UPLOAD_DURATION
from benchsink.sink.errors import SinkStateError, UploadError
from benchsink.sink.models import Segment, UploadReport
from benchsink.sink.naming import list_segments, remote_object_name
from benchsink.sink.writer import RotatingWriter
from benchsink.utils.logging import get_logger, log_context

logger = get_logger(__name__)


class StorageBackend(Protocol):
    async def upload(self, local_path: str, dest_key: str) -> None:
        """Upload a finished segment, replacing any existing object."""


class UploadCoordinator:
    """
    Closes every writer, then uploads each local segment under a
    deterministic object name. One failed segment never aborts the batch;
    nothing is retried here, a later `upload_all` simply overwrites.

    `writer` may be None to upload segments left on disk by an earlier run.
    """

    def __init__(
        self,
        storage: StorageBackend,
        *,
        work_dir: str | Path,
        base_name: str,
        host_id: str,
        prefix: Optional[str] = None,
        writer: Optional[RotatingWriter] = None,
    ) -> None:
        self.storage = storage
        self.work_dir = Path(work_dir)
        self.base_name = base_name
        self.host_id = host_id
        self.prefix = prefix
        self.writer = writer
        self._flushed = writer is None

    @property
    def flushed(self) -> bool:
        return self._flushed

    def flush(self) -> None:
        """Close retired writers and then the active one."""
        if self.writer is None:
            return
        errors = self.writer.reclaim_retired()
        if errors:
            logger.warning("flush_reclaim_incomplete", failures=len(errors))
        closed = self.writer.close_active()
        self._flushed = True
        logger.info(
            "sink_flushed",
            active_path=str(closed.path) if closed else None,
            retired_remaining=self.writer.retired_count,
        )

    def segments(self) -> list[Segment]:
        return list_segments(self.work_dir, self.base_name)

    def object_name(self, segment: Segment) -> str:
        return remote_object_name(self.host_id, segment.index, self.prefix)

    async def upload_all(self) -> UploadReport:
        if not self._flushed:
            raise SinkStateError("flush() must be called before upload_all()")

        segments = self.segments()
        report = UploadReport()
        total = len(segments)
        logger.info("uploading_diagnostics", segments=total, work_dir=str(self.work_dir))

        for position, segment in enumerate(segments, start=1):
            object_name = self.object_name(segment)
            with log_context(segment_index=segment.index, object_name=object_name):
                logger.info(
                    "uploading_segment",
                    position=position,
                    total=total,
                    path=str(segment.path),
                )
                start = time.perf_counter()
                try:
                    await self.storage.upload(str(segment.path), object_name)
                except Exception as exc:  # noqa: BLE001 - one file never aborts the batch
                    SEGMENTS_UPLOADED.labels(outcome="failed").inc()
                    error = UploadError(str(segment.path), object_name, exc)
                    report.record_failure(str(segment.path), error)
                    logger.error(
                        "segment_upload_failed", path=str(segment.path), exc_info=exc
                    )
                    continue
                finally:
                    UPLOAD_DURATION.observe(time.perf_counter() - start)

                SEGMENTS_UPLOADED.labels(outcome="succeeded").inc()
                report.record_success(object_name)
                logger.info("segment_uploaded", path=str(segment.path))

        logger.info(
            "upload_finished",
            succeeded=len(report.succeeded),
            failed=len(report.failed),
        )
        return report


__all__ = ["StorageBackend", "UploadCoordinator"]
