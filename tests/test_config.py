from pathlib import Path

import pytest
from pydantic import ValidationError

from benchsink.config.config import DEFAULT_BASE_NAME, SinkConfig


@pytest.mark.unit
def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("socket.gethostname", lambda: "bench-01")
    config = SinkConfig()

    assert config.base_name == DEFAULT_BASE_NAME == "BenchmarkDiagnostics.out"
    assert config.work_dir == Path(".")
    assert config.max_segment_bytes == 100_000_000
    assert config.check_interval_seconds == 5.0
    assert config.reclaim_interval_seconds is None
    assert config.effective_reclaim_interval == 5.0
    assert config.payload_columns == (2, 3)
    assert config.host_id == "bench-01"
    assert config.s3_bucket == "diagnostics"
    assert config.s3_prefix is None
    assert config.create_bucket is True


@pytest.mark.unit
def test_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BENCHSINK_WORK_DIR", str(tmp_path))
    monkeypatch.setenv("BENCHSINK_MAX_SEGMENT_BYTES", "2048")
    monkeypatch.setenv("BENCHSINK_CHECK_INTERVAL", "0.5")
    monkeypatch.setenv("BENCHSINK_RECLAIM_INTERVAL", "10")
    monkeypatch.setenv("BENCHSINK_PAYLOAD_COLUMNS", "0, 1")
    monkeypatch.setenv("BENCHSINK_HOST_ID", "runner-7")
    monkeypatch.setenv("BENCHSINK_S3_BUCKET", "perf-diag")
    monkeypatch.setenv("BENCHSINK_S3_PREFIX", "nightly")
    monkeypatch.setenv("BENCHSINK_S3_ENDPOINT_URL", "")
    monkeypatch.setenv("BENCHSINK_CREATE_BUCKET", "false")

    config = SinkConfig.from_env()

    assert config.work_dir == tmp_path
    assert config.max_segment_bytes == 2048
    assert config.check_interval_seconds == 0.5
    assert config.effective_reclaim_interval == 10
    assert config.payload_columns == (0, 1)
    assert config.host_id == "runner-7"
    assert config.s3_bucket == "perf-diag"
    assert config.s3_prefix == "nightly"
    assert config.s3_endpoint_url is None
    assert config.create_bucket is False


@pytest.mark.unit
def test_from_yaml_with_sink_section(tmp_path: Path) -> None:
    path = tmp_path / "sink.yaml"
    path.write_text(
        "sink:\n"
        "  base_name: diag.out\n"
        "  max_segment_bytes: 500\n"
        "  host_id: yaml-host\n"
        "  s3_prefix: ''\n"
        "  payload_columns: [4, 5]\n"
    )

    config = SinkConfig.from_yaml(path)

    assert config.base_name == "diag.out"
    assert config.max_segment_bytes == 500
    assert config.host_id == "yaml-host"
    assert config.s3_prefix is None
    assert config.payload_columns == (4, 5)


@pytest.mark.unit
def test_from_yaml_flat_mapping(tmp_path: Path) -> None:
    path = tmp_path / "sink.yaml"
    path.write_text("host_id: flat\ncheck_interval_seconds: 1\n")

    config = SinkConfig.from_yaml(path)

    assert config.host_id == "flat"
    assert config.check_interval_seconds == 1.0


@pytest.mark.unit
def test_from_yaml_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "sink.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ValueError):
        SinkConfig.from_yaml(path)


@pytest.mark.unit
@pytest.mark.parametrize(
    "overrides",
    [
        {"max_segment_bytes": 0},
        {"check_interval_seconds": -1},
        {"reclaim_interval_seconds": -0.5},
        {"base_name": ""},
        {"base_name": "nested/diag.out"},
        {"payload_columns": (1, -1)},
        {"payload_columns": (1, 2, 3)},
        {"host_id": ""},
    ],
)
def test_invalid_values_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        SinkConfig(**{"host_id": "h", **overrides})
