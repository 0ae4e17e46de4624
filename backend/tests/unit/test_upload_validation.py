"""Unit tests for upload validation utilities"""

import pytest

from incorpflow.domain.documents import (
    MAX_FILE_SIZE,
    SUPPORTED_MIME_TYPES,
    build_storage_key,
    category_for_mime_type,
    ensure_valid_upload,
    is_supported_mime_type,
    sanitize_filename,
    validate_file_size,
    validate_filename,
    validate_storage_path,
)
from incorpflow.domain.errors import InvalidAttachment


class TestMimeTypeValidation:
    """Test MIME type allow-list"""

    def test_supported_mime_types_constant(self):
        assert 'application/pdf' in SUPPORTED_MIME_TYPES
        assert 'image/png' in SUPPORTED_MIME_TYPES
        assert 'application/vnd.openxmlformats-officedocument.wordprocessingml.document' in SUPPORTED_MIME_TYPES

    def test_pdf_supported(self):
        assert is_supported_mime_type('application/pdf') is True

    def test_images_supported(self):
        assert is_supported_mime_type('image/jpeg') is True
        assert is_supported_mime_type('image/webp') is True

    def test_executables_not_supported(self):
        assert is_supported_mime_type('application/x-msdownload') is False
        assert is_supported_mime_type('application/zip') is False


class TestCategories:
    """Test upload-area category selection and key layout"""

    def test_images_category(self):
        assert category_for_mime_type('image/png') == 'images'

    def test_documents_category(self):
        assert category_for_mime_type('application/pdf') == 'documents'
        assert category_for_mime_type('text/plain') == 'documents'

    def test_unknown_goes_to_temp(self):
        assert category_for_mime_type('application/octet-stream') == 'temp'

    def test_storage_key_keeps_lowercase_extension(self):
        assert build_storage_key('abc123', 'Form 1.PDF', 'application/pdf') == 'documents/abc123.pdf'

    def test_storage_key_without_extension(self):
        assert build_storage_key('abc123', 'scan', 'image/jpeg') == 'images/abc123'

    def test_storage_key_drops_odd_extension(self):
        assert build_storage_key('abc123', 'x.p$f', 'application/pdf') == 'documents/abc123'


class TestFileSizeValidation:
    """Test file size limits"""

    def test_within_limit(self):
        assert validate_file_size(1024) == (True, None)

    def test_exactly_at_limit(self):
        assert validate_file_size(MAX_FILE_SIZE)[0] is True

    def test_over_limit(self):
        ok, error = validate_file_size(MAX_FILE_SIZE + 1)
        assert ok is False
        assert "exceeds maximum size" in error

    def test_empty_file(self):
        assert validate_file_size(0) == (False, "File is empty (0 bytes)")

    def test_custom_limit(self):
        assert validate_file_size(2048, max_size=1024)[0] is False


class TestFilenameValidation:
    """Test filename checks"""

    def test_valid(self):
        assert validate_filename('form18-director-1.pdf') == (True, None)

    def test_empty(self):
        assert validate_filename('   ')[0] is False

    @pytest.mark.parametrize('name', ['../etc/passwd', 'a/b.pdf', 'a\\b.pdf'])
    def test_path_traversal(self, name):
        assert validate_filename(name)[0] is False

    def test_control_characters(self):
        assert validate_filename('bad\x07name.pdf')[0] is False

    def test_too_long(self):
        assert validate_filename('a' * 256 + '.pdf')[0] is False


class TestStoragePathValidation:
    """Test {category}/{file} paths addressed by clients"""

    def test_valid_path(self):
        assert validate_storage_path('documents/ab12.pdf') == (True, None)

    def test_leading_slash_allowed(self):
        assert validate_storage_path('/images/ab12.png')[0] is True

    @pytest.mark.parametrize('path', ['secrets/ab12.pdf', 'documents', 'documents/../x', '../documents/a.pdf'])
    def test_invalid_paths(self, path):
        assert validate_storage_path(path)[0] is False


class TestSanitizeFilename:

    def test_strips_directories(self):
        assert sanitize_filename('../../form1.pdf') == 'form1.pdf'

    def test_replaces_special_characters(self):
        assert sanitize_filename('form 18 (copy).pdf') == 'form_18_copy_.pdf'

    def test_truncates_keeping_extension(self):
        sanitized = sanitize_filename('a' * 300 + '.pdf')
        assert len(sanitized) == 255
        assert sanitized.endswith('.pdf')


class TestEnsureValidUpload:
    """Test the combined upload check"""

    def test_returns_sanitized_name(self):
        assert ensure_valid_upload('receipt (1).pdf', 'application/pdf', 100) == 'receipt_1_.pdf'

    def test_unsupported_type(self):
        with pytest.raises(InvalidAttachment, match="Unsupported MIME type"):
            ensure_valid_upload('tool.exe', 'application/x-msdownload', 100)

    def test_missing_type(self):
        with pytest.raises(InvalidAttachment):
            ensure_valid_upload('receipt.pdf', None, 100)

    def test_too_large(self):
        with pytest.raises(InvalidAttachment):
            ensure_valid_upload('receipt.pdf', 'application/pdf', 2048, max_size=1024)

    def test_bad_filename(self):
        with pytest.raises(InvalidAttachment):
            ensure_valid_upload('../receipt.pdf', 'application/pdf', 100)
