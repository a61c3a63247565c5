"""Background rotation and reclaim loop."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Optional

from benchsink.monitoring.metrics import ACTIVE_SEGMENT_BYTES
from benchsink.sink.errors import RotationError
from benchsink.sink.writer import RotatingWriter
from benchsink.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CHECK_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_SEGMENT_BYTES = 100_000_000


class RotationMonitor:
    """
    Periodically rotates the active segment once it reaches `max_bytes` and
    closes retired writers.

    Each tick runs to completion in a worker thread; `stop()` is observed
    between ticks, so a rotation in progress always finishes.
    """

    def __init__(
        self,
        writer: RotatingWriter,
        *,
        max_bytes: int = DEFAULT_MAX_SEGMENT_BYTES,
        interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS,
        reclaim_interval_seconds: Optional[float] = None,
    ) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be > 0")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.writer = writer
        self.max_bytes = max_bytes
        self.interval = interval_seconds
        self.reclaim_interval = (
            interval_seconds
            if reclaim_interval_seconds is None
            else reclaim_interval_seconds
        )
        self._last_reclaim: Optional[float] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._stop = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task is None:
            self._stop.clear()
            self._task = asyncio.create_task(self._run())
            logger.info(
                "rotation_monitor_started",
                max_bytes=self.max_bytes,
                interval_seconds=self.interval,
                reclaim_interval_seconds=self.reclaim_interval,
            )

    async def stop(self) -> None:
        """Request shutdown and wait for the current tick to finish."""
        if self._task:
            self._stop.set()
            await self._task
            self._task = None
            logger.info("rotation_monitor_stopped")

    async def _run(self) -> None:
        while not self._stop.is_set():
            await asyncio.to_thread(self.tick)
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)

    def tick(self) -> None:
        """One monitor iteration: size check, then reclaim when due."""
        try:
            self.check_size()
        except RotationError as exc:
            logger.error("rotation_failed", exc_info=exc)
        except Exception as exc:  # noqa: BLE001 - loop must survive any step
            logger.error("monitor_tick_failed", step="check_size", exc_info=exc)

        if not self._reclaim_due():
            return
        try:
            self.writer.reclaim_retired()
        except Exception as exc:  # noqa: BLE001
            logger.error("monitor_tick_failed", step="reclaim", exc_info=exc)
        finally:
            self._last_reclaim = time.monotonic()

    def check_size(self) -> bool:
        """Rotate if the active segment reached the threshold."""
        if self.writer.drained:
            return False
        info = self.writer.current_segment_info()
        ACTIVE_SEGMENT_BYTES.set(info.approximate_size)
        if info.approximate_size < self.max_bytes:
            return False

        logger.info(
            "segment_size_exceeded",
            path=str(info.path),
            size_bytes=info.approximate_size,
            max_bytes=self.max_bytes,
        )
        self.writer.rotate()
        return True

    def _reclaim_due(self) -> bool:
        if self._last_reclaim is None:
            return True
        return time.monotonic() - self._last_reclaim >= self.reclaim_interval


__all__ = ["RotationMonitor", "DEFAULT_CHECK_INTERVAL_SECONDS", "DEFAULT_MAX_SEGMENT_BYTES"]
