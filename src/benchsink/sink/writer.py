"""
Rotating, thread-safe writer for local diagnostic segments.

`RotatingWriter` owns exactly one active `SegmentWriter` that every producer
thread appends to. Rotation publishes a fresh segment by swapping a single
reference under a short lock; the previous writer moves to the retired set
and is closed later by `reclaim_retired()` (monitor or flush).
"""

from __future__ import annotations

import threading
from pathlib import Path
from io import FileIO
from typing import Optional

from benchsink.monitoring.metrics import (
    APPEND_ERRORS,
    RECLAIM_ERRORS,
    RECORDS_APPENDED,
    RETIRED_WRITERS,
    ROTATION_ERRORS,
    ROTATIONS,
)
from benchsink.sink.errors import (
    AppendError,
    ReclaimError,
    RotationError,
    SegmentClosedError,
    SinkStateError,
)
from benchsink.sink.models import Segment, SegmentInfo
from benchsink.sink.naming import segment_file_name
from benchsink.utils.logging import get_logger

logger = get_logger(__name__)


class SegmentWriter:
    """Synchronized append handle for a single segment file."""

    def __init__(self, segment: Segment, *, truncate: bool = False) -> None:
        self.segment = segment
        self._lock = threading.Lock()
        # Unbuffered: a failed write leaves nothing behind to resurface later.
        self._f: FileIO = open(segment.path, "wb" if truncate else "ab", buffering=0)
        self._size = self._f.tell()

    @property
    def path(self) -> Path:
        return self.segment.path

    @property
    def closed(self) -> bool:
        return self.segment.closed

    @property
    def size(self) -> int:
        """Bytes in the file; read without the lock, so approximate."""
        return self._size

    def write(self, data: bytes) -> None:
        with self._lock:
            if self.segment.closed or self._f.closed:
                raise SegmentClosedError(str(self.path))
            view = memoryview(data)
            while view:
                written = self._f.write(view)
                self._size += written
                view = view[written:]

    def close(self) -> bool:
        """Close the file. Returns False when it was already closed."""
        with self._lock:
            if self.segment.closed:
                return False
            self._f.close()
            self.segment.closed = True
            return True


class RotatingWriter:
    """
    Single active segment shared by all producers, with size-driven rotation.

    - `append` serializes on the active segment's own lock only; reading the
      active reference takes `_lock` for the duration of a pointer read.
    - `rotate` creates the next file outside `_lock`, then swaps the
      reference and retires the old writer inside it.
    - A writer appears in the retired set at most once and leaves it once.
    """

    def __init__(self, work_dir: str | Path, base_name: str) -> None:
        self.work_dir = Path(work_dir)
        self.base_name = base_name
        self.work_dir.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._rotate_lock = threading.Lock()
        self._retired: list[SegmentWriter] = []
        self._drained = False

        first = Segment(index=0, path=self.work_dir / segment_file_name(base_name, 0))
        self._active = SegmentWriter(first)
        self._next_index = 1
        logger.info("segment_opened", index=0, path=str(first.path))

    @property
    def active_segment(self) -> Segment:
        with self._lock:
            return self._active.segment

    @property
    def retired_count(self) -> int:
        with self._lock:
            return len(self._retired)

    @property
    def drained(self) -> bool:
        return self._drained

    def append(self, record: bytes) -> None:
        """
        Append one newline-terminated record to the active segment.

        A writer retired and closed between reading the reference and
        writing is retried against the new active writer.
        """
        data = record if record.endswith(b"\n") else record + b"\n"
        while True:
            with self._lock:
                writer = self._active
            try:
                writer.write(data)
            except SegmentClosedError:
                with self._lock:
                    if writer is self._active:
                        APPEND_ERRORS.inc()
                        raise AppendError("sink is drained; no active segment") from None
                continue
            except OSError as exc:
                APPEND_ERRORS.inc()
                raise AppendError(f"write to {writer.path} failed: {exc}") from exc
            RECORDS_APPENDED.inc()
            return

    def current_segment_info(self) -> SegmentInfo:
        with self._lock:
            writer = self._active
        return SegmentInfo(path=writer.path, approximate_size=writer.size)

    def rotate(self) -> Segment:
        """Publish a new empty segment and retire the current one."""
        with self._rotate_lock:
            if self._drained:
                raise SinkStateError("cannot rotate a drained writer")

            index = self._next_index
            path = self.work_dir / segment_file_name(self.base_name, index)
            try:
                new_writer = SegmentWriter(Segment(index=index, path=path), truncate=True)
            except OSError as exc:
                ROTATION_ERRORS.inc()
                raise RotationError(f"cannot create segment {path}: {exc}") from exc

            with self._lock:
                old = self._active
                self._active = new_writer
                self._retired.append(old)
                retired = len(self._retired)
            self._next_index += 1

        ROTATIONS.inc()
        RETIRED_WRITERS.set(retired)
        logger.info(
            "segment_rotated",
            index=index,
            path=str(path),
            retired_index=old.segment.index,
            retired_size=old.size,
        )
        return new_writer.segment

    def reclaim_retired(self) -> list[ReclaimError]:
        """
        Close every retired writer, one attempt each.

        Closed writers leave the set; failures stay for the next call and
        are returned (and logged) rather than raised.
        """
        with self._lock:
            pending = list(self._retired)

        errors: list[ReclaimError] = []
        for writer in pending:
            try:
                closed_now = writer.close()
            except OSError as exc:
                RECLAIM_ERRORS.inc()
                error = ReclaimError(str(writer.path), exc)
                errors.append(error)
                logger.error("reclaim_failed", path=str(writer.path), exc_info=exc)
                continue

            with self._lock:
                if writer in self._retired:
                    self._retired.remove(writer)
            if closed_now:
                logger.info(
                    "retired_writer_closed",
                    index=writer.segment.index,
                    path=str(writer.path),
                    size_bytes=writer.size,
                )

        RETIRED_WRITERS.set(self.retired_count)
        return errors

    def close_active(self) -> Optional[Segment]:
        """Close the active writer and end the writing phase."""
        with self._rotate_lock:
            self._drained = True
            with self._lock:
                writer = self._active
        try:
            writer.close()
        except OSError as exc:
            logger.error("active_close_failed", path=str(writer.path), exc_info=exc)
            return None
        return writer.segment


__all__ = ["SegmentWriter", "RotatingWriter"]
