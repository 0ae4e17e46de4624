"""S3 Storage Adapter - Implementation of ObjectStoragePort using boto3.

Provides S3-compatible storage for AWS S3, MinIO, and other S3-compatible services.
Keys mirror the local upload area ({category}/{file_id}{ext}) so attachments
keep the same storage paths whichever backend holds them.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import asyncio
import logging
import secrets
from datetime import datetime, timezone
from io import BytesIO
from typing import BinaryIO, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ...domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StorageError,
    StoredFile,
)
from ...domain.documents.validation import build_storage_key

logger = logging.getLogger(__name__)


class S3StorageAdapter(ObjectStoragePort):
    """S3-compatible storage adapter using boto3.

    boto3 calls are blocking; each one runs in a worker thread so callers can
    bound it with ``asyncio.wait_for``.

    Example:
        config = load_storage_config(get_settings())
        storage = S3StorageAdapter(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )

        with open('form1.pdf', 'rb') as f:
            stored = await storage.store_file(f, 'form1.pdf', 'application/pdf')
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        url_prefix: str = "/uploads",
    ):
        """Initialize S3 storage adapter.

        Args:
            endpoint_url: S3 endpoint URL (None for AWS S3, URL for MinIO)
            access_key: S3 access key ID
            secret_key: S3 secret access key
            bucket_name: S3 bucket name
            region: AWS region (default: 'us-east-1')
            url_prefix: Public URL prefix stored files are served under

        Raises:
            StorageError: If S3 client initialization fails
        """
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

        self.bucket_name = bucket_name
        self.region = region
        self.url_prefix = url_prefix.rstrip("/")

        logger.info(
            f"Initialized S3 storage adapter: bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
        )

    async def store_file(
        self,
        file: BinaryIO,
        filename: str,
        mime_type: str,
    ) -> StoredFile:
        """Upload a new object under a fresh id.

        Raises:
            StorageError: If upload fails
            ValueError: If file is empty
        """
        content = file.read()
        if not content:
            raise ValueError("Cannot store empty file")

        file_id = secrets.token_hex(16)
        storage_key = build_storage_key(file_id, filename, mime_type)

        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=storage_key,
                Body=BytesIO(content),
                ContentType=mime_type,
                Metadata={"original_filename": filename},
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                f"S3 upload failed: storage_key={storage_key}, "
                f"error={error_code}, message={e}"
            )
            raise StorageError(f"Failed to upload file: {error_code}")
        except BotoCoreError as e:
            logger.error(f"S3 upload failed: storage_key={storage_key}, error={e}")
            raise StorageError(f"Failed to upload file: {e}")

        logger.info(
            f"Uploaded file: storage_key={storage_key}, "
            f"size={len(content)}, mime_type={mime_type}"
        )
        return StoredFile(
            file_id=file_id,
            storage_key=storage_key,
            url=f"{self.url_prefix}/{storage_key}",
            size_bytes=len(content),
            mime_type=mime_type,
            uploaded_at=datetime.now(timezone.utc),
        )

    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        """Retrieve an object's content.

        Raises:
            FileNotFoundError: If the object doesn't exist
            StorageError: If retrieval fails
        """
        try:
            response = await asyncio.to_thread(
                self.s3_client.get_object,
                Bucket=self.bucket_name,
                Key=storage_key,
            )
            content = await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("NoSuchKey", "404"):
                logger.warning(f"File not found: storage_key={storage_key}")
                raise FileNotFoundError(f"File not found: {storage_key}")
            logger.error(
                f"S3 retrieval failed: storage_key={storage_key}, "
                f"error={error_code}"
            )
            raise StorageError(f"Failed to retrieve file: {error_code}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to retrieve file: {e}")

        logger.info(f"Retrieved file: storage_key={storage_key}")
        return BytesIO(content)

    async def delete_file(self, storage_key: str) -> bool:
        """Delete an object.

        Returns:
            bool: True if deleted, False if it didn't exist

        Raises:
            StorageError: If deletion fails
        """
        if not await self.file_exists(storage_key):
            logger.info(f"File not found for deletion: storage_key={storage_key}")
            return False

        try:
            await asyncio.to_thread(
                self.s3_client.delete_object,
                Bucket=self.bucket_name,
                Key=storage_key,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                f"S3 deletion failed: storage_key={storage_key}, "
                f"error={error_code}"
            )
            raise StorageError(f"Failed to delete file: {error_code}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to delete file: {e}")

        logger.info(f"Deleted file: storage_key={storage_key}")
        return True

    async def file_exists(self, storage_key: str) -> bool:
        """Check if an object exists (HEAD request).

        Raises:
            StorageError: If the bucket cannot be reached
        """
        try:
            await asyncio.to_thread(
                self.s3_client.head_object,
                Bucket=self.bucket_name,
                Key=storage_key,
            )
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchKey", "NotFound"):
                return False
            logger.warning(
                f"Error checking file existence: storage_key={storage_key}, "
                f"error={error_code}"
            )
            raise StorageError(f"Failed to check file: {error_code}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to check file: {e}")

    async def verify_bucket_exists(self) -> bool:
        """Verify that the configured bucket exists.

        Called on application startup to fail fast if the bucket is missing.

        Raises:
            StorageError: If bucket check fails or bucket doesn't exist
        """
        try:
            await asyncio.to_thread(self.s3_client.head_bucket, Bucket=self.bucket_name)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "404":
                raise StorageError(
                    f"Bucket '{self.bucket_name}' does not exist. "
                    f"Create it first or update the S3_BUCKET_NAME environment variable."
                )
            raise StorageError(f"Failed to verify bucket: {error_code}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to verify bucket: {e}")

        logger.info(f"Verified bucket exists: {self.bucket_name}")
        return True
