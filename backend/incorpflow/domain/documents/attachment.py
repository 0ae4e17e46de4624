"""DocumentAttachment value object.

One uploaded file's metadata as it is stored inside a registration's document
slots. Attachments are immutable: replacing a document means building a new
attachment and deleting the old storage path.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from ..errors import InvalidAttachment
from .ports.object_storage_port import StoredFile


class ReviewStatus(str, Enum):
    """Admin review outcome for payment receipts."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentAttachment(BaseModel):
    """Metadata for one stored file.

    Serialized with camelCase keys (``mimeType``, ``storagePath`` ...), which is
    the layout persisted in the JSON slot columns.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    id: str
    name: str
    mime_type: str = "application/octet-stream"
    size_bytes: int = Field(0, ge=0)
    url: str
    storage_path: str
    uploaded_at: datetime
    title: Optional[str] = None
    signed_by_customer: Optional[bool] = None
    submitted_at: Optional[datetime] = None
    review_status: Optional[ReviewStatus] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None

    @model_validator(mode="after")
    def _check_location(self) -> "DocumentAttachment":
        # id, url and storage path are populated together or not at all
        missing = [
            label
            for label, value in (("id", self.id), ("url", self.url), ("storagePath", self.storage_path))
            if not value or not value.strip()
        ]
        if missing:
            raise ValueError(f"attachment is missing {', '.join(missing)}")
        return self

    @classmethod
    def from_payload(cls, payload: Any) -> "DocumentAttachment":
        """Build an attachment from a JSON-like payload.

        Raises:
            InvalidAttachment: If the payload is not a complete attachment
        """
        if isinstance(payload, cls):
            return payload
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InvalidAttachment(f"Invalid document attachment: {e.errors()[0]['msg']}")

    @classmethod
    def from_stored_file(
        cls,
        stored: StoredFile,
        name: str,
        title: Optional[str] = None,
        signed_by_customer: Optional[bool] = None,
    ) -> "DocumentAttachment":
        """Wrap a freshly stored blob as an attachment."""
        return cls(
            id=stored.file_id,
            name=name,
            mime_type=stored.mime_type,
            size_bytes=stored.size_bytes,
            url=stored.url,
            storage_path=stored.storage_key,
            uploaded_at=stored.uploaded_at,
            title=title,
            signed_by_customer=signed_by_customer,
            submitted_at=datetime.now(timezone.utc) if signed_by_customer else None,
        )

    def to_json(self) -> dict:
        """Serialize for a JSON column."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    def with_review(self, status: ReviewStatus, reviewer: Optional[str]) -> "DocumentAttachment":
        return self.model_copy(
            update={
                "review_status": status,
                "reviewed_at": datetime.now(timezone.utc),
                "reviewed_by": reviewer,
            }
        )
