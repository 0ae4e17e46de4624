"""Storage configuration for the registration upload area.

Builds the blob store adapter from Settings: a local upload directory by
default, or S3-compatible object storage (MinIO in development, AWS S3 in
production) when STORAGE_BACKEND=s3.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ...config import Settings
from ...domain.documents.ports.object_storage_port import ObjectStoragePort
from .local_storage_adapter import LocalFileStorageAdapter
from .s3_storage_adapter import S3StorageAdapter


@dataclass
class StorageConfig:
    """Configuration for the blob store.

    Attributes:
        backend: "local" or "s3"
        upload_dir: Root of the local upload area
        url_prefix: Public URL prefix for stored files
        endpoint_url: S3 endpoint URL (e.g., 'http://localhost:9000' for MinIO,
                      None for AWS S3 which uses default regional endpoints)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        bucket_name: S3 bucket name for registration documents
        region: AWS region (default: 'us-east-1')
    """
    backend: str
    upload_dir: Path
    url_prefix: str
    endpoint_url: Optional[str] = None
    access_key: str = ""
    secret_key: str = ""
    bucket_name: str = ""
    region: str = "us-east-1"


def load_storage_config(settings: Settings) -> StorageConfig:
    return StorageConfig(
        backend=settings.STORAGE_BACKEND,
        upload_dir=settings.UPLOAD_DIR,
        url_prefix=settings.UPLOAD_URL_PREFIX,
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        access_key=settings.S3_ACCESS_KEY_ID,
        secret_key=settings.S3_SECRET_ACCESS_KEY,
        bucket_name=settings.S3_BUCKET_NAME,
        region=settings.S3_REGION,
    )


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Raises:
        ValueError: If configuration is invalid
    """
    if config.backend == "local":
        if not str(config.upload_dir):
            raise ValueError("UPLOAD_DIR is required for local storage")
        return

    if config.backend != "s3":
        raise ValueError(f"Unknown storage backend: {config.backend}")

    if not config.access_key:
        raise ValueError("Storage access_key is required")

    if not config.secret_key:
        raise ValueError("Storage secret_key is required")

    if not config.bucket_name:
        raise ValueError("Storage bucket_name is required")

    if config.endpoint_url:
        # MinIO configuration
        if not config.endpoint_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid endpoint_url: {config.endpoint_url}. "
                "Must start with http:// or https://"
            )
    elif not config.region:
        raise ValueError("AWS region is required when using S3 (S3_ENDPOINT_URL not set)")


def create_storage(config: StorageConfig) -> ObjectStoragePort:
    """Instantiate the adapter for ``config.backend``."""
    validate_storage_config(config)
    if config.backend == "s3":
        return S3StorageAdapter(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
            url_prefix=config.url_prefix,
        )
    return LocalFileStorageAdapter(base_dir=config.upload_dir, url_prefix=config.url_prefix)
