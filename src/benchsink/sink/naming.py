"""Segment file naming and remote object naming."""

from __future__ import annotations

import glob
import re
from pathlib import Path
from typing import Optional

from benchsink.sink.models import Segment

REMOTE_SUFFIX = ".out"


def segment_file_name(base_name: str, index: int) -> str:
    """
    Local file name of segment `index`.

    Segment 0 is `<base_name>`; segment N (N >= 1) is `<base_name>-<N-1>`,
    so the numeric suffix counts rotations starting at 0.
    """
    if index < 0:
        raise ValueError("segment index must be >= 0")
    if index == 0:
        return base_name
    return f"{base_name}-{index - 1}"


def parse_segment_index(base_name: str, file_name: str) -> Optional[int]:
    """Inverse of `segment_file_name`; None for names outside the pattern."""
    match = re.fullmatch(rf"{re.escape(base_name)}(?:-(0|[1-9]\d*))?", file_name)
    if match is None:
        return None
    suffix = match.group(1)
    if suffix is None:
        return 0
    return int(suffix) + 1


def list_segments(work_dir: str | Path, base_name: str) -> list[Segment]:
    """Return segments on disk in `work_dir`, ordered by sequence index."""
    directory = Path(work_dir)
    if not directory.is_dir():
        return []

    segments: list[Segment] = []
    for path in directory.glob(f"{glob.escape(base_name)}*"):
        if not path.is_file():
            continue
        index = parse_segment_index(base_name, path.name)
        if index is None:
            continue
        segments.append(Segment(index=index, path=path, closed=True))
    segments.sort(key=lambda s: s.index)
    return segments


def remote_object_name(host_id: str, index: int, prefix: Optional[str] = None) -> str:
    """
    Object key for segment `index`: `[<prefix>/]<host>-<host>-<index>.out`.

    Unique per host and segment index, so keys of one run never collide.
    """
    if not host_id:
        raise ValueError("host_id must not be empty")
    if index < 0:
        raise ValueError("segment index must be >= 0")
    key = f"{host_id}-{host_id}-{index}{REMOTE_SUFFIX}"
    prefix = prefix.strip("/") if prefix else ""
    return f"{prefix}/{key}" if prefix else key


__all__ = [
    "segment_file_name",
    "parse_segment_index",
    "list_segments",
    "remote_object_name",
]
