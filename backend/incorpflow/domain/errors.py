"""Registration error taxonomy.

Every failure raised by the workflow engine, the slot manager, the store and
the blob layer derives from RegistrationError. Each subclass carries a stable
``kind`` tag and the HTTP status the API maps it to.
"""

from typing import Iterable, Optional


class RegistrationError(Exception):
    """Base class for all registration workflow errors."""

    kind = "registration_error"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class NotFound(RegistrationError):
    """Registration or attachment id does not exist."""

    kind = "not_found"
    http_status = 404


class PreconditionNotMet(RegistrationError):
    """Step advance attempted before the required gates were satisfied."""

    kind = "precondition_not_met"
    http_status = 400

    def __init__(self, message: str, missing: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.missing = list(missing or [])

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["missing"] = self.missing
        return payload


class InvalidState(RegistrationError):
    """Operation not valid for the current (step, status) pair."""

    kind = "invalid_state"
    http_status = 400


class NotYetPublished(RegistrationError):
    """Customer acknowledgement attempted before documents were published."""

    kind = "not_yet_published"
    http_status = 400


class InvalidIndex(RegistrationError):
    """Negative or out-of-range position for an indexed slot."""

    kind = "invalid_index"
    http_status = 400


class InvalidSlot(RegistrationError):
    """Unknown slot name, or an operation that does not match the slot kind."""

    kind = "invalid_slot"
    http_status = 400


class InvalidSlotKey(RegistrationError):
    """Keyed slot entry that does not answer a published document title."""

    kind = "invalid_slot_key"
    http_status = 400


class InvalidAttachment(RegistrationError):
    """Attachment metadata is incomplete (id, url and storage path go together)."""

    kind = "invalid_attachment"
    http_status = 400


class DuplicateIdentity(RegistrationError):
    """Registration id or contact email already taken."""

    kind = "duplicate_identity"
    http_status = 409


class ConcurrentModification(RegistrationError):
    """Row version changed between read and write."""

    kind = "concurrent_modification"
    http_status = 409


class StoreError(RegistrationError):
    """Relational store failure (unreachable, timeout, constraint violation)."""

    kind = "store_error"
    http_status = 500


class BlobError(RegistrationError):
    """Blob store failure (write, delete or timeout)."""

    kind = "blob_error"
    http_status = 500
