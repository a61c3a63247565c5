from __future__ import annotations

import asyncio
import contextlib
import json
import os
import threading
from pathlib import Path
from typing import Any, Callable, Optional, TextIO

import click
from prometheus_client import start_http_server

from benchsink.config.config import SinkConfig
from benchsink.sink.listener import DiagnosticSink, EventCallback
from benchsink.sink.models import UploadReport
from benchsink.sink.naming import list_segments, remote_object_name
from benchsink.sink.upload import UploadCoordinator
from benchsink.storage.s3 import S3StorageBackend, build_s3_client
from benchsink.utils.logging import bind_run_context, configure_logging, get_logger
from benchsink.utils.signals import install_shutdown_handlers, remove_shutdown_handlers

logger = get_logger(__name__)


class StreamEventSource:
    """Reads one JSON array payload per line from a text stream on a thread."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self._callbacks: list[EventCallback] = []
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def subscribe(self, callback: EventCallback) -> None:
        self._callbacks.append(callback)

    def start(self, on_eof: Callable[[], None]) -> None:
        self._thread = threading.Thread(
            target=self._read, args=(on_eof,), name="benchsink-reader", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()

    def _read(self, on_eof: Callable[[], None]) -> None:
        try:
            for lineno, line in enumerate(self.stream, start=1):
                if self._stopped.is_set():
                    break
                line = line.strip()
                if not line:
                    continue
                try:
                    payload = json.loads(line)
                except json.JSONDecodeError as exc:
                    logger.warning("invalid_event_line", line=lineno, error=str(exc))
                    continue
                if not isinstance(payload, list):
                    logger.warning("invalid_event_line", line=lineno, error="not a JSON array")
                    continue
                for callback in self._callbacks:
                    callback(payload)
        finally:
            on_eof()


def _apply_overrides(config: SinkConfig, **overrides: Any) -> SinkConfig:
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return config
    return SinkConfig(**{**config.model_dump(), **updates})


def _build_storage(config: SinkConfig) -> S3StorageBackend:
    client = build_s3_client(
        endpoint_url=config.s3_endpoint_url, region_name=config.s3_region
    )
    return S3StorageBackend(
        client, bucket=config.s3_bucket, create_bucket=config.create_bucket
    )


def _echo_report(report: UploadReport) -> None:
    for name in report.succeeded:
        click.echo(f"uploaded  {name}")
    for path, error in report.failed:
        click.echo(f"failed    {path}: {error}", err=True)
    click.echo(f"{len(report.succeeded)} uploaded, {len(report.failed)} failed")


def _notify(loop: asyncio.AbstractEventLoop, event: asyncio.Event) -> None:
    # The loop may already be gone when stdin closes after a signal.
    with contextlib.suppress(RuntimeError):
        loop.call_soon_threadsafe(event.set)


async def _record(
    config: SinkConfig, stream: TextIO, upload: bool
) -> Optional[UploadReport]:
    source = StreamEventSource(stream)
    sink = DiagnosticSink(config, _build_storage(config), source=source)

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    installed = install_shutdown_handlers(loop, stop.set)
    try:
        await sink.start()
        source.start(on_eof=lambda: _notify(loop, stop))
        await stop.wait()
    finally:
        remove_shutdown_handlers(loop, installed)
        source.stop()
        await sink.flush()

    if not upload:
        return None
    return await sink.upload()


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML config file (defaults to BENCHSINK_* environment variables).",
)
@click.option("--log-level", default=lambda: os.getenv("LOG_LEVEL", "INFO"))
@click.option("--json-logs/--console-logs", default=False)
@click.pass_context
def cli(
    ctx: click.Context, config_path: Optional[Path], log_level: str, json_logs: bool
) -> None:
    """Rotating diagnostic sink for benchmark latency telemetry."""
    configure_logging(level=log_level, json_output=json_logs)
    ctx.obj = SinkConfig.from_yaml(config_path) if config_path else SinkConfig.from_env()


def _location_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--work-dir", type=click.Path(file_okay=False, path_type=Path))(func)
    func = click.option("--base-name")(func)
    func = click.option("--host-id")(func)
    func = click.option("--prefix", "s3_prefix")(func)
    return func


def _storage_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--bucket", "s3_bucket")(func)
    func = click.option("--endpoint-url", "s3_endpoint_url")(func)
    func = click.option("--region", "s3_region")(func)
    return func


@cli.command()
@_location_options
@_storage_options
@click.option("--max-bytes", "max_segment_bytes", type=int)
@click.option("--interval", "check_interval_seconds", type=float)
@click.option("--reclaim-interval", "reclaim_interval_seconds", type=float)
@click.option("--upload/--no-upload", default=True)
@click.option("--metrics-port", type=int, help="Expose Prometheus metrics on this port.")
@click.pass_context
def record(
    ctx: click.Context, upload: bool, metrics_port: Optional[int], **overrides: Any
) -> None:
    """Record JSON-array events from stdin, then flush and upload."""
    config = _apply_overrides(ctx.obj, **overrides)
    bind_run_context(host_id=config.host_id, base_name=config.base_name)
    if metrics_port:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)

    stdin = click.get_text_stream("stdin")
    report = asyncio.run(_record(config, stdin, upload))
    if report is None:
        return
    _echo_report(report)
    if not report.ok:
        ctx.exit(1)


@cli.command()
@_location_options
@_storage_options
@click.pass_context
def upload(ctx: click.Context, **overrides: Any) -> None:
    """Upload segments already on disk (safe to re-run after a partial failure)."""
    config = _apply_overrides(ctx.obj, **overrides)
    bind_run_context(host_id=config.host_id, base_name=config.base_name)
    coordinator = UploadCoordinator(
        _build_storage(config),
        work_dir=config.work_dir,
        base_name=config.base_name,
        host_id=config.host_id,
        prefix=config.s3_prefix,
    )
    report = asyncio.run(coordinator.upload_all())
    _echo_report(report)
    if not report.ok:
        ctx.exit(1)


@cli.command()
@_location_options
@click.pass_context
def segments(ctx: click.Context, **overrides: Any) -> None:
    """List local segments and the object names they upload to."""
    config = _apply_overrides(ctx.obj, **overrides)
    found = list_segments(config.work_dir, config.base_name)
    if not found:
        click.echo(f"no segments named {config.base_name}* in {config.work_dir}")
        return
    for segment in found:
        size = segment.path.stat().st_size
        name = remote_object_name(config.host_id, segment.index, config.s3_prefix)
        click.echo(f"{segment.index:>4}  {size:>12}  {segment.path.name}  ->  {name}")


if __name__ == "__main__":
    cli()
