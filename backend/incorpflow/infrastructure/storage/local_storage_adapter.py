"""Local Storage Adapter - ObjectStoragePort backed by a flat upload directory.

Layout (relative to ``base_dir``):
    images/{file_id}{ext}
    documents/{file_id}{ext}
    temp/{file_id}{ext}

Files are served under ``{url_prefix}/{storage_key}``. Blocking filesystem
calls run in a worker thread so the event loop stays free.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import asyncio
import logging
import secrets
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import BinaryIO

from ...domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StorageError,
    StoredFile,
)
from ...domain.documents.validation import UPLOAD_CATEGORIES, build_storage_key

logger = logging.getLogger(__name__)


class LocalFileStorageAdapter(ObjectStoragePort):
    """Filesystem storage adapter for the upload area.

    Example:
        storage = LocalFileStorageAdapter(base_dir=Path("uploads"))

        with open('form1.pdf', 'rb') as f:
            stored = await storage.store_file(f, 'form1.pdf', 'application/pdf')
        # stored.url == '/uploads/documents/<id>.pdf'
    """

    def __init__(self, base_dir: Path, url_prefix: str = "/uploads"):
        self.base_dir = Path(base_dir)
        self.url_prefix = url_prefix.rstrip("/")
        try:
            for category in UPLOAD_CATEGORIES:
                (self.base_dir / category).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create upload directory {self.base_dir}: {e}")

        logger.info(f"Initialized local storage adapter: base_dir={self.base_dir}")

    async def store_file(
        self,
        file: BinaryIO,
        filename: str,
        mime_type: str,
    ) -> StoredFile:
        """Write a new blob under a fresh id.

        Raises:
            StorageError: If the write fails
            ValueError: If file is empty
        """
        content = file.read()
        if not content:
            raise ValueError("Cannot store empty file")

        file_id = secrets.token_hex(16)
        storage_key = build_storage_key(file_id, filename, mime_type)
        path = self._path(storage_key)

        try:
            await asyncio.to_thread(path.write_bytes, content)
        except OSError as e:
            logger.error(f"Local write failed: storage_key={storage_key}, error={e}")
            raise StorageError(f"Failed to store file: {e}")

        logger.info(
            f"Stored file: storage_key={storage_key}, size={len(content)}, mime_type={mime_type}"
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
        path = self._path(storage_key)
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            logger.warning(f"File not found: storage_key={storage_key}")
            raise FileNotFoundError(f"File not found: {storage_key}")
        except OSError as e:
            raise StorageError(f"Failed to retrieve file: {e}")
        return BytesIO(content)

    async def delete_file(self, storage_key: str) -> bool:
        path = self._path(storage_key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            logger.info(f"File not found for deletion: storage_key={storage_key}")
            return False
        except OSError as e:
            logger.error(f"Local deletion failed: storage_key={storage_key}, error={e}")
            raise StorageError(f"Failed to delete file: {e}")

        logger.info(f"Deleted file: storage_key={storage_key}")
        return True

    async def file_exists(self, storage_key: str) -> bool:
        return await asyncio.to_thread(self._path(storage_key).is_file)

    def _path(self, storage_key: str) -> Path:
        """Resolve a key inside the upload area.

        Raises:
            StorageError: If the key escapes the upload directory
        """
        base = self.base_dir.resolve()
        path = (base / storage_key).resolve()
        if base not in path.parents:
            raise StorageError(f"Invalid storage key: {storage_key}")
        return path
