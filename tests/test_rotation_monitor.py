import asyncio
from pathlib import Path
from unittest.mock import Mock

import pytest

from benchsink.sink.errors import RotationError
from benchsink.sink.monitor import RotationMonitor
from benchsink.sink.writer import RotatingWriter

BASE = "BenchmarkDiagnostics.out"

RECORD = b"r" * 29  # 30 bytes on disk with the newline


def _lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


@pytest.mark.unit
def test_size_threshold_scenario(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(writer, max_bytes=100, interval_seconds=5)

    rotated = []
    for _ in range(5):
        writer.append(RECORD)
        rotated.append(monitor.check_size())

    assert rotated == [False, False, False, True, False]

    writer.reclaim_retired()
    writer.close_active()
    assert len(_lines(tmp_path / BASE)) == 4
    assert len(_lines(tmp_path / f"{BASE}-0")) == 1
    assert sorted(p.name for p in tmp_path.iterdir()) == [BASE, f"{BASE}-0"]


@pytest.mark.unit
def test_threshold_is_inclusive(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(writer, max_bytes=30, interval_seconds=5)

    writer.append(RECORD)

    assert monitor.check_size() is True
    assert writer.active_segment.index == 1
    assert monitor.check_size() is False


@pytest.mark.unit
def test_tick_reclaims_segments_retired_by_rotation(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(
        writer, max_bytes=30, interval_seconds=5, reclaim_interval_seconds=0
    )
    writer.append(RECORD)

    monitor.tick()

    assert writer.active_segment.index == 1
    assert writer.retired_count == 0


@pytest.mark.unit
def test_tick_survives_rotation_failure_and_still_reclaims(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(writer, max_bytes=1, interval_seconds=5)
    writer.append(RECORD)
    writer.rotate = Mock(side_effect=RotationError("disk full"))
    writer.reclaim_retired = Mock(return_value=[])

    monitor.tick()

    writer.rotate.assert_called_once()
    writer.reclaim_retired.assert_called_once()
    assert writer.active_segment.index == 0


@pytest.mark.unit
def test_tick_survives_unexpected_errors(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(writer, max_bytes=1, interval_seconds=5)
    writer.current_segment_info = Mock(side_effect=RuntimeError("stat failed"))
    writer.reclaim_retired = Mock(side_effect=RuntimeError("close failed"))

    monitor.tick()
    monitor.tick()

    assert writer.current_segment_info.call_count == 2


@pytest.mark.unit
def test_reclaim_runs_on_its_own_interval(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(
        writer, max_bytes=10_000, interval_seconds=0.01, reclaim_interval_seconds=3600
    )
    writer.reclaim_retired = Mock(return_value=[])

    monitor.tick()
    monitor.tick()
    monitor.tick()

    writer.reclaim_retired.assert_called_once()


@pytest.mark.unit
def test_reclaim_interval_defaults_to_check_interval(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(writer, max_bytes=10, interval_seconds=2.5)
    assert monitor.reclaim_interval == 2.5


@pytest.mark.unit
def test_drained_writer_is_not_rotated(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(writer, max_bytes=1, interval_seconds=5)
    writer.append(RECORD)
    writer.close_active()

    assert monitor.check_size() is False
    monitor.tick()
    assert writer.active_segment.index == 0


@pytest.mark.unit
@pytest.mark.parametrize(
    "kwargs", [{"max_bytes": 0}, {"max_bytes": 10, "interval_seconds": 0}]
)
def test_invalid_settings_rejected(tmp_path: Path, kwargs: dict) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    with pytest.raises(ValueError):
        RotationMonitor(writer, **kwargs)


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_background_loop_rotates_and_stops_gracefully(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(writer, max_bytes=100, interval_seconds=0.01)

    await monitor.start()
    assert monitor.running
    for _ in range(4):
        writer.append(RECORD)

    await _wait_for(lambda: writer.active_segment.index == 1 and writer.retired_count == 0)

    await monitor.stop()
    assert not monitor.running

    for _ in range(10):
        writer.append(RECORD)
    await asyncio.sleep(0.05)
    assert writer.active_segment.index == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_start_and_stop_are_idempotent(tmp_path: Path) -> None:
    writer = RotatingWriter(tmp_path, BASE)
    monitor = RotationMonitor(writer, max_bytes=100, interval_seconds=10)

    await monitor.start()
    task = monitor._task
    await monitor.start()
    assert monitor._task is task

    await asyncio.wait_for(monitor.stop(), timeout=2)
    await monitor.stop()
    assert not monitor.running
