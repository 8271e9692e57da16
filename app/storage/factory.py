from pathlib import Path

import boto3
from botocore.config import Config

from app.config.settings import Settings
from app.storage.base import BaseObjectStorage
from app.storage.local_storage import LocalObjectStorage
from app.storage.s3_storage import S3ObjectStorage


class ObjectStorageFactory:
    """Creates the configured object storage adapter."""

    BACKENDS = ("local", "s3")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStorage:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalObjectStorage(
                Path(settings.storage_local_root),
                chunk_size=settings.storage_chunk_size_bytes,
            )
        if backend == "s3":
            if not settings.storage_s3_bucket:
                raise ValueError("storage_s3_bucket is required for storage_backend=s3")
            client = boto3.client(
                "s3",
                region_name=settings.storage_s3_region,
                config=Config(
                    connect_timeout=10,
                    read_timeout=settings.upload_timeout_seconds,
                    retries={"total_max_attempts": 1},
                ),
            )
            return S3ObjectStorage(
                client,
                settings.storage_s3_bucket,
                settings.storage_s3_region,
                chunk_size=settings.storage_chunk_size_bytes,
                public_base_url=settings.storage_public_base_url,
            )
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
