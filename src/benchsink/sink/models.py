"""Data models for the diagnostic sink."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NamedTuple


class SinkState(str, Enum):
    """Lifecycle of a sink. Transitions only move forward."""

    RECORDING = "recording"
    DRAINING = "draining"
    UPLOADED = "uploaded"


@dataclass
class Segment:
    """One local append-only output file."""

    index: int
    path: Path
    closed: bool = False

    @property
    def name(self) -> str:
        return self.path.name


class SegmentInfo(NamedTuple):
    """Snapshot of the active segment; size read without the append lock."""

    path: Path
    approximate_size: int


@dataclass
class UploadReport:
    """Outcome of one upload batch."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[tuple[str, BaseException]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    def record_success(self, object_name: str) -> None:
        self.succeeded.append(object_name)

    def record_failure(self, path: str, error: BaseException) -> None:
        self.failed.append((path, error))


__all__ = ["SinkState", "Segment", "SegmentInfo", "UploadReport"]
