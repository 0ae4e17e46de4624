"""Bounded blob store calls.

Wraps an ObjectStoragePort so every call is limited by a timeout, counted in
the blob metrics, and surfaces failures as BlobError for the API layer.
"""

import asyncio
import logging
import time
from io import BytesIO
from typing import BinaryIO, Iterable

from ...domain.documents.attachment import DocumentAttachment
from ...domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StorageError,
    StoredFile,
)
from ...domain.errors import BlobError
from ...observability.metrics import (
    blob_operation_duration_seconds,
    blob_operations_total,
    orphaned_blobs_total,
)

logger = logging.getLogger(__name__)


class TimedBlobStore:
    """Timeout-bounded facade over a blob store adapter."""

    def __init__(self, storage: ObjectStoragePort, timeout: float):
        self.storage = storage
        self.timeout = timeout

    async def store(self, content: bytes, filename: str, mime_type: str) -> StoredFile:
        return await self._call("store", self.storage.store_file(BytesIO(content), filename, mime_type))

    async def retrieve(self, storage_key: str) -> BinaryIO:
        """Raises FileNotFoundError for a missing key."""
        return await self._call("retrieve", self.storage.retrieve_file(storage_key))

    async def delete(self, storage_key: str) -> bool:
        return await self._call("delete", self.storage.delete_file(storage_key))

    async def discard(self, attachments: Iterable[DocumentAttachment], reason: str) -> int:
        """Best-effort delete of blobs no row references any more.

        Failures are logged and counted as orphans; they never fail the
        request that already committed. Returns how many deletes failed.
        """
        failures = 0
        for attachment in attachments:
            try:
                await self.delete(attachment.storage_path)
            except BlobError as e:
                failures += 1
                orphaned_blobs_total.inc()
                logger.warning(
                    f"Orphaned blob after {reason}: {attachment.storage_path}: {e.message}",
                    extra={"storage_key": attachment.storage_path},
                )
        return failures

    async def _call(self, operation: str, awaitable):
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            blob_operations_total.labels(operation=operation, status="timeout").inc()
            raise BlobError(f"Blob store {operation} timed out after {self.timeout}s") from e
        except FileNotFoundError:
            blob_operations_total.labels(operation=operation, status="not_found").inc()
            raise
        except (StorageError, OSError) as e:
            blob_operations_total.labels(operation=operation, status="error").inc()
            raise BlobError(f"Blob store {operation} failed: {e}") from e
        finally:
            blob_operation_duration_seconds.labels(operation=operation).observe(
                time.perf_counter() - start
            )

        blob_operations_total.labels(operation=operation, status="success").inc()
        return result
