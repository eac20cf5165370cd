"""Pluggable storage backends."""

from __future__ import annotations

import logging

from app.config import Settings
from app.storage.base import (
    FOLDER_CATEGORIES,
    FOLDERS,
    ByteStream,
    StorageBackend,
    StorageEntry,
    companion_key,
    is_companion_key,
    make_key,
)

logger = logging.getLogger(__name__)

__all__ = [
    "FOLDER_CATEGORIES",
    "FOLDERS",
    "ByteStream",
    "StorageBackend",
    "StorageEntry",
    "companion_key",
    "create_storage_backend",
    "is_companion_key",
    "make_key",
]


def create_storage_backend(settings: Settings) -> StorageBackend:
    """Build the backend selected by ``settings.storage_backend``."""
    if settings.uses_bucket:
        import boto3

        from app.storage.s3 import S3StorageBackend

        client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url or None,
            region_name=settings.s3_region or None,
            aws_access_key_id=settings.s3_access_key_id or None,
            aws_secret_access_key=settings.s3_secret_access_key or None,
        )
        logger.info("Using S3 storage bucket %s", settings.s3_bucket)
        return S3StorageBackend(settings.s3_bucket, client)

    from app.storage.local import LocalStorageBackend

    logger.info("Using local storage at %s", settings.upload_dir)
    return LocalStorageBackend(settings.upload_dir)
