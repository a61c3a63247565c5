import sys
from pathlib import Path
from typing import Dict, Iterable, Optional

import boto3
import pytest
from moto import mock_aws

# Ensure src/ is on sys.path for local test runs without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from benchsink.config.config import SinkConfig  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line(
        "markers",
        "integration: tests that exercise several components together or are slower",
    )
    config.addinivalue_line("markers", "s3: tests that interact with S3 or moto S3")
    config.addinivalue_line("markers", "slow: slow-running tests")


class FakeStorage:
    """In-memory storage backend; uploads of selected keys fail."""

    def __init__(self, fail_keys: Optional[Iterable[str]] = None) -> None:
        self.objects: Dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_keys = set(fail_keys or ())

    async def upload(self, local_path: str, dest_key: str) -> None:
        self.calls.append((local_path, dest_key))
        if dest_key in self.fail_keys:
            raise ConnectionError(f"simulated outage for {dest_key}")
        self.objects[dest_key] = Path(local_path).read_bytes()


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def s3_client_mock():
    """Moto-backed S3 client with the diagnostics bucket."""
    with mock_aws():
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket="diagnostics")
        yield s3


@pytest.fixture
def sink_config(tmp_path: Path) -> SinkConfig:
    """Small-threshold configuration writing into a temp work dir."""
    return SinkConfig(
        base_name="BenchmarkDiagnostics.out",
        work_dir=tmp_path / "work",
        max_segment_bytes=100,
        check_interval_seconds=0.01,
        host_id="bench-host",
    )
