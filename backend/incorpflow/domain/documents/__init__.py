"""Documents domain module - attachments, blob storage port, upload validation"""

from .attachment import DocumentAttachment, ReviewStatus
from .ports.object_storage_port import ObjectStoragePort, StorageError, StoredFile
from .validation import (
    is_supported_mime_type,
    category_for_mime_type,
    build_storage_key,
    validate_file_size,
    validate_filename,
    validate_storage_path,
    ensure_valid_upload,
    sanitize_filename,
    SUPPORTED_MIME_TYPES,
    MAX_FILE_SIZE,
)

__all__ = [
    "DocumentAttachment",
    "ReviewStatus",
    "ObjectStoragePort",
    "StoredFile",
    "StorageError",
    "is_supported_mime_type",
    "category_for_mime_type",
    "build_storage_key",
    "validate_file_size",
    "validate_filename",
    "validate_storage_path",
    "ensure_valid_upload",
    "sanitize_filename",
    "SUPPORTED_MIME_TYPES",
    "MAX_FILE_SIZE",
]
