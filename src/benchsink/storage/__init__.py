"""
Remote storage backends for finished segments.
"""

from .s3 import S3StorageBackend, build_s3_client

__all__ = ["S3StorageBackend", "build_s3_client"]
