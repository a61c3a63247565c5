"""Sink configuration - pydantic model loaded from ENV or YAML."""

from __future__ import annotations

import os
import socket
from pathlib import Path
from typing import Any, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_BASE_NAME = "BenchmarkDiagnostics.out"
DEFAULT_BUCKET = "diagnostics"

_ENV_FIELDS = {
    "base_name": "BENCHSINK_BASE_NAME",
    "work_dir": "BENCHSINK_WORK_DIR",
    "max_segment_bytes": "BENCHSINK_MAX_SEGMENT_BYTES",
    "check_interval_seconds": "BENCHSINK_CHECK_INTERVAL",
    "reclaim_interval_seconds": "BENCHSINK_RECLAIM_INTERVAL",
    "payload_columns": "BENCHSINK_PAYLOAD_COLUMNS",
    "host_id": "BENCHSINK_HOST_ID",
    "s3_bucket": "BENCHSINK_S3_BUCKET",
    "s3_prefix": "BENCHSINK_S3_PREFIX",
    "s3_endpoint_url": "BENCHSINK_S3_ENDPOINT_URL",
    "s3_region": "BENCHSINK_S3_REGION",
    "create_bucket": "BENCHSINK_CREATE_BUCKET",
}


def _default_host_id() -> str:
    return socket.gethostname()


class SinkConfig(BaseModel):
    """Diagnostic sink configuration."""

    base_name: str = Field(
        DEFAULT_BASE_NAME, min_length=1, description="File name of segment 0"
    )
    work_dir: Path = Field(Path("."), description="Directory holding local segments")
    max_segment_bytes: int = Field(
        100_000_000, gt=0, description="Rotate once the active segment reaches this size"
    )
    check_interval_seconds: float = Field(
        5.0, gt=0, description="Interval between rotation checks (seconds)"
    )
    reclaim_interval_seconds: Optional[float] = Field(
        None,
        ge=0,
        description="Interval between retired-writer reclaims; defaults to the check interval",
    )
    payload_columns: Tuple[int, int] = Field(
        (2, 3), description="Event payload positions written as the two columns"
    )
    host_id: str = Field(
        default_factory=_default_host_id,
        min_length=1,
        description="Host identifier used in remote object names",
    )
    s3_bucket: str = Field(DEFAULT_BUCKET, description="Destination bucket")
    s3_prefix: Optional[str] = Field(None, description="Optional object key prefix")
    s3_endpoint_url: Optional[str] = Field(
        None, description="Endpoint for S3-compatible stores"
    )
    s3_region: Optional[str] = Field(None, description="S3 region")
    create_bucket: bool = Field(True, description="Create the bucket when missing")

    @field_validator("base_name")
    @classmethod
    def validate_base_name(cls, v: str) -> str:
        if "/" in v or "\\" in v:
            raise ValueError("base_name must be a bare file name")
        return v

    @field_validator("payload_columns", mode="before")
    @classmethod
    def parse_payload_columns(cls, v: Any) -> Any:
        if isinstance(v, str):
            return tuple(int(part.strip()) for part in v.split(",") if part.strip())
        return v

    @field_validator("payload_columns")
    @classmethod
    def validate_payload_columns(cls, v: Tuple[int, int]) -> Tuple[int, int]:
        if any(col < 0 for col in v):
            raise ValueError("payload columns must be >= 0")
        return v

    @field_validator("s3_prefix", "s3_endpoint_url", "s3_region", mode="before")
    @classmethod
    def empty_as_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def effective_reclaim_interval(self) -> float:
        if self.reclaim_interval_seconds is None:
            return self.check_interval_seconds
        return self.reclaim_interval_seconds

    @classmethod
    def from_env(cls) -> "SinkConfig":
        values: dict[str, Any] = {}
        for field_name, env_name in _ENV_FIELDS.items():
            raw = os.getenv(env_name)
            if raw is None or raw == "":
                continue
            values[field_name] = raw
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "SinkConfig":
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: top-level YAML must be a mapping")
        # Allow the sink settings to live under a `sink:` section.
        section = data.get("sink", data)
        if not isinstance(section, dict):
            raise ValueError(f"{path}: 'sink' section must be a mapping")
        return cls(**section)


__all__ = ["SinkConfig", "DEFAULT_BASE_NAME", "DEFAULT_BUCKET"]
