"""File validation utilities for registration uploads

Uploads land in one of three categories of the upload area: ``images`` for
image types, ``documents`` for PDF/Word/Excel/text, ``temp`` for anything the
caller stores without a known type.
"""

import os
import re
from typing import Optional, Tuple

from ..errors import InvalidAttachment


IMAGE_MIME_TYPES = {
    'image/jpeg',
    'image/jpg',
    'image/png',
    'image/gif',
    'image/webp',
}

DOCUMENT_MIME_TYPES = {
    'application/pdf',
    'application/msword',  # .doc
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',  # .docx
    'text/plain',
    'application/vnd.ms-excel',  # .xls
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',  # .xlsx
}

SUPPORTED_MIME_TYPES = IMAGE_MIME_TYPES | DOCUMENT_MIME_TYPES

UPLOAD_CATEGORIES = ('images', 'documents', 'temp')

# File size limit (default 10MB, overridden by MAX_UPLOAD_SIZE_BYTES in Settings)
MAX_FILE_SIZE = 10 * 1024 * 1024


def is_supported_mime_type(mime_type: str) -> bool:
    """Check if MIME type is allowed in the upload area

    Example:
        >>> is_supported_mime_type('application/pdf')
        True
        >>> is_supported_mime_type('application/zip')
        False
    """
    return mime_type in SUPPORTED_MIME_TYPES


def category_for_mime_type(mime_type: str) -> str:
    """Pick the upload-area directory for a MIME type

    Example:
        >>> category_for_mime_type('image/png')
        'images'
        >>> category_for_mime_type('application/pdf')
        'documents'
    """
    if mime_type in IMAGE_MIME_TYPES:
        return 'images'
    if mime_type in DOCUMENT_MIME_TYPES:
        return 'documents'
    return 'temp'


def build_storage_key(file_id: str, filename: str, mime_type: str) -> str:
    """Storage key for a new blob: {category}/{file_id}{ext}

    Example:
        >>> build_storage_key("9f3a", "Form 1.PDF", "application/pdf")
        'documents/9f3a.pdf'
    """
    ext = os.path.splitext(os.path.basename(filename or ""))[1].lower()
    if not re.fullmatch(r"\.[a-z0-9]{1,10}", ext):
        ext = ""
    return f"{category_for_mime_type(mime_type)}/{file_id}{ext}"


def validate_file_size(size_bytes: int, max_size: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Args:
        size_bytes: File size in bytes
        max_size: Maximum allowed size (defaults to MAX_FILE_SIZE)

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> validate_file_size(1024)
        (True, None)
        >>> validate_file_size(0)
        (False, 'File is empty (0 bytes)')
    """
    if max_size is None:
        max_size = MAX_FILE_SIZE

    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: str) -> Tuple[bool, Optional[str]]:
    """Validate an uploaded filename

    Validation rules:
    - Not empty
    - Max 255 characters
    - No path traversal (../, ..\\)
    - No null bytes or control characters

    Example:
        >>> validate_filename('form1.pdf')
        (True, None)
        >>> validate_filename('')
        (False, 'Filename cannot be empty')
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if '..' in filename or '/' in filename or '\\' in filename:
        return False, "Filename contains path traversal or directory separators"

    if '\x00' in filename:
        return False, "Filename contains null bytes"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def validate_storage_path(path: str) -> Tuple[bool, Optional[str]]:
    """Validate a ``{category}/{file}`` path addressed by clients

    Example:
        >>> validate_storage_path('documents/ab12.pdf')
        (True, None)
        >>> validate_storage_path('../secrets')
        (False, 'Path must be {category}/{file}')
    """
    parts = (path or '').strip('/').split('/')
    if len(parts) != 2 or parts[0] not in UPLOAD_CATEGORIES:
        return False, "Path must be {category}/{file}"

    ok, error = validate_filename(parts[1])
    if not ok:
        return False, error
    return True, None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for display and storage metadata

    Example:
        >>> sanitize_filename('../../form1.pdf')
        'form1.pdf'
        >>> sanitize_filename('form 18 (copy).pdf')
        'form_18_copy_.pdf'
    """
    filename = os.path.basename(filename)

    # Replace problematic characters with underscore
    filename = re.sub(r'[^\w\s.-]', '_', filename)

    # Collapse multiple spaces/underscores
    filename = re.sub(r'[\s_]+', '_', filename)

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        max_name_len = 255 - len(ext)
        filename = name[:max_name_len] + ext

    return filename


def ensure_valid_upload(
    filename: str,
    mime_type: Optional[str],
    size_bytes: int,
    max_size: Optional[int] = None,
) -> str:
    """Run every upload check and return the sanitized filename

    Raises:
        InvalidAttachment: On the first failed check
    """
    ok, error = validate_filename(filename)
    if not ok:
        raise InvalidAttachment(error)

    if not mime_type or not is_supported_mime_type(mime_type):
        raise InvalidAttachment(
            f"Unsupported MIME type: {mime_type}. "
            f"Supported types: images (JPEG, PNG, GIF, WebP), PDF, Word, Excel, plain text"
        )

    ok, error = validate_file_size(size_bytes, max_size)
    if not ok:
        raise InvalidAttachment(error)

    return sanitize_filename(filename)
