"""Object Storage Port - Domain interface for the registration upload area.

This port defines the contract for storing and retrieving the files that
registrations reference (receipts, templates, signed forms, certificates).
Adapters implement it for the local flat-file upload area or S3-compatible
object storage.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO


class StorageError(Exception):
    """Blob store operation failed (unreachable, permission, bad key)."""
    pass


@dataclass
class StoredFile:
    """Metadata for a file accepted by the blob store.

    Attributes:
        file_id: Random hex id, unique per stored file
        storage_key: Internal path/key of the blob (format: {category}/{file_id}{ext})
        url: Public path the file is served under
        size_bytes: File size in bytes
        mime_type: MIME type of the file (e.g., 'application/pdf')
        uploaded_at: Time the blob was written (UTC)
    """
    file_id: str
    storage_key: str
    url: str
    size_bytes: int
    mime_type: str
    uploaded_at: datetime


class ObjectStoragePort(ABC):
    """Port interface for blob storage operations.

    Key Design Principles:
    - Every stored file gets a fresh id and key; nothing is overwritten in place
    - Keys are grouped by category (images, documents, temp) like the upload area
    - Deletion is idempotent

    Example Usage:
        storage = LocalFileStorageAdapter(base_dir=Path("uploads"))

        with open('form1.pdf', 'rb') as f:
            stored = await storage.store_file(
                file=f,
                filename='form1.pdf',
                mime_type='application/pdf'
            )

        file_stream = await storage.retrieve_file(stored.storage_key)
    """

    @abstractmethod
    async def store_file(
        self,
        file: BinaryIO,
        filename: str,
        mime_type: str,
    ) -> StoredFile:
        """Store a file and return its metadata.

        Args:
            file: Binary file stream to store (must be readable)
            filename: Original filename (for extension extraction)
            mime_type: MIME type of the file

        Returns:
            StoredFile: id, key, public url, size, mime type, upload time

        Raises:
            StorageError: If the write fails or storage is unavailable
            ValueError: If file is empty
        """
        pass

    @abstractmethod
    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        """Retrieve a file by its storage key.

        Raises:
            FileNotFoundError: If file doesn't exist in storage
            StorageError: If retrieval fails

        Note:
            Caller is responsible for closing the returned stream.
        """
        pass

    @abstractmethod
    async def delete_file(self, storage_key: str) -> bool:
        """Delete a file from storage.

        Returns:
            bool: True if file was deleted, False if it didn't exist

        Raises:
            StorageError: If deletion fails
        """
        pass

    @abstractmethod
    async def file_exists(self, storage_key: str) -> bool:
        """Check if a file exists in storage."""
        pass
