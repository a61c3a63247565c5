"""S3 storage backend for diagnostic segments."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from benchsink.utils.logging import get_logger

logger = get_logger(__name__)

_MISSING_CODES = {"404", "NOSUCHKEY", "NOSUCHBUCKET", "NOTFOUND"}


def build_s3_client(
    endpoint_url: Optional[str] = None, region_name: Optional[str] = None
) -> Any:
    """Create a boto3 S3 client; credentials come from the default chain."""
    return boto3.client("s3", endpoint_url=endpoint_url, region_name=region_name)


def _is_missing(exc: ClientError) -> bool:
    response = getattr(exc, "response", {}) or {}
    code = str((response.get("Error") or {}).get("Code") or "").upper()
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return status == 404 or code in _MISSING_CODES


class S3StorageBackend:
    """
    Async wrapper around boto3 S3 uploads.

    The bucket is checked (and created if `create_bucket`) before the first
    upload; a failed check is retried on the next upload.
    Keys are stored exactly as given; run prefixes are part of the key.
    """

    def __init__(
        self,
        s3_client: Any,
        bucket: str,
        *,
        create_bucket: bool = True,
    ) -> None:
        self.s3 = s3_client
        self.bucket = bucket
        self.create_bucket = create_bucket
        self._bucket_ready = False
        self._bucket_lock = threading.Lock()

    def ensure_bucket(self) -> None:
        with self._bucket_lock:
            if self._bucket_ready:
                return
            try:
                self.s3.head_bucket(Bucket=self.bucket)
            except ClientError as exc:
                if not (self.create_bucket and _is_missing(exc)):
                    raise
                logger.info("creating_bucket", bucket=self.bucket)
                self._create_bucket()
            self._bucket_ready = True

    def _create_bucket(self) -> None:
        region = getattr(getattr(self.s3, "meta", None), "region_name", None)
        if region and region != "us-east-1":
            self.s3.create_bucket(
                Bucket=self.bucket,
                CreateBucketConfiguration={"LocationConstraint": region},
            )
        else:
            self.s3.create_bucket(Bucket=self.bucket)

    def object_exists(self, key: str) -> bool:
        try:
            self.s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _is_missing(exc):
                return False
            raise
        return True

    def _upload_sync(self, local_path: str, dest_key: str, overwrite: bool) -> None:
        self.ensure_bucket()
        if not overwrite and self.object_exists(dest_key):
            raise FileExistsError(f"s3://{self.bucket}/{dest_key}")
        self.s3.upload_file(local_path, self.bucket, dest_key)

    async def upload(self, local_path: str, dest_key: str, overwrite: bool = True) -> None:
        """Upload file to S3; an existing object is replaced unless `overwrite` is False."""
        await asyncio.to_thread(self._upload_sync, local_path, dest_key, overwrite)
