"""Unit tests for DocumentAttachment metadata"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from conftest import make_attachment
from incorpflow.domain.documents import DocumentAttachment, ReviewStatus, StoredFile
from incorpflow.domain.errors import InvalidAttachment


def stored_file(**overrides) -> StoredFile:
    fields = dict(
        file_id="4f1c2a",
        storage_key="documents/4f1c2a.pdf",
        url="/uploads/documents/4f1c2a.pdf",
        size_bytes=2048,
        mime_type="application/pdf",
        uploaded_at=datetime(2026, 2, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return StoredFile(**fields)


class TestSerialization:
    """Test the camelCase JSON layout"""

    def test_to_json_uses_camelcase(self):
        data = make_attachment("form1.pdf", title="Form 1").to_json()

        assert data["mimeType"] == "application/pdf"
        assert data["sizeBytes"] == 1024
        assert data["storagePath"].startswith("documents/")
        assert data["title"] == "Form 1"
        assert "reviewStatus" not in data

    def test_from_payload_round_trip(self):
        attachment = make_attachment("form1.pdf")

        assert DocumentAttachment.from_payload(attachment.to_json()) == attachment

    def test_from_payload_returns_same_instance(self):
        attachment = make_attachment()
        assert DocumentAttachment.from_payload(attachment) is attachment

    def test_unknown_keys_ignored(self):
        payload = make_attachment().to_json()
        payload["thumbnail"] = "x.png"

        assert DocumentAttachment.from_payload(payload).id == payload["id"]


class TestLocationInvariant:
    """id, url and storage path travel together"""

    @pytest.mark.parametrize("field", ["id", "url", "storagePath"])
    def test_blank_location_field_rejected(self, field):
        payload = make_attachment().to_json()
        payload[field] = " "

        with pytest.raises(InvalidAttachment, match="missing"):
            DocumentAttachment.from_payload(payload)

    def test_missing_field_rejected(self):
        payload = make_attachment().to_json()
        del payload["url"]

        with pytest.raises(InvalidAttachment):
            DocumentAttachment.from_payload(payload)

    def test_negative_size_rejected(self):
        with pytest.raises(ValidationError):
            make_attachment(size_bytes=-1)


class TestFromStoredFile:

    def test_admin_document(self):
        attachment = DocumentAttachment.from_stored_file(stored_file(), name="form1.pdf")

        assert attachment.id == "4f1c2a"
        assert attachment.storage_path == "documents/4f1c2a.pdf"
        assert attachment.url == "/uploads/documents/4f1c2a.pdf"
        assert attachment.signed_by_customer is None
        assert attachment.submitted_at is None

    def test_customer_document_is_stamped(self):
        attachment = DocumentAttachment.from_stored_file(
            stored_file(), name="form1-signed.pdf", signed_by_customer=True
        )

        assert attachment.signed_by_customer is True
        assert attachment.submitted_at is not None


class TestReview:

    def test_with_review_returns_copy(self):
        attachment = make_attachment("balance.pdf", review_status=ReviewStatus.PENDING)

        reviewed = attachment.with_review(ReviewStatus.APPROVED, "finance")

        assert reviewed.review_status == ReviewStatus.APPROVED
        assert reviewed.reviewed_by == "finance"
        assert reviewed.reviewed_at is not None
        assert attachment.review_status == ReviewStatus.PENDING

    def test_attachments_are_immutable(self):
        attachment = make_attachment()

        with pytest.raises(ValidationError):
            attachment.name = "other.pdf"
