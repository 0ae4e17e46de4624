"""Registration service - workflow and document operations on registrations.

Every mutation follows the same path:

1. read the current row
2. compute the updated aggregate with the pure workflow/slot functions
3. write only the changed columns, guarded by the row version

A version conflict re-runs steps 1-3 against the fresh row, so concurrent
edits to different slots both land. Uploads write the blob before the row and
delete it again if the row write fails; blobs that a committed update
replaced or removed are deleted afterwards.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..domain.documents.attachment import DocumentAttachment, ReviewStatus
from ..domain.documents.ports.object_storage_port import ObjectStoragePort
from ..domain.documents.validation import ensure_valid_upload
from ..domain.errors import ConcurrentModification, InvalidIndex, InvalidSlotKey
from ..domain.registrations import slots, workflow
from ..domain.registrations.models import Registration
from ..domain.registrations.slots import SlotKind, SlotOwner
from ..domain.registrations.status import Gate
from ..infrastructure.repositories.registration_repository import RegistrationRepository
from ..infrastructure.storage.timed_storage import TimedBlobStore
from ..observability.metrics import (
    registration_conflicts_total,
    registration_transitions_total,
    registrations_created_total,
    slot_mutations_total,
)

logger = logging.getLogger(__name__)

Operation = Callable[[Registration], Registration]

# RegistrationUpdate attribute -> slot name, for slot fields of a PUT body
_SLOT_FIELDS: Dict[str, str] = {
    spec.attribute: spec.name
    for spec in slots.SLOTS.values()
    if not spec.in_customer_bundle
}
_SLOT_FIELDS["customer_documents"] = slots.CUSTOMER_BUNDLE


class RegistrationService:
    """Service for registration operations."""

    def __init__(
        self,
        repository: RegistrationRepository,
        storage: ObjectStoragePort,
        max_retries: int = 3,
        blob_timeout: float = 30.0,
        max_upload_size: Optional[int] = None,
    ):
        self.repository = repository
        self.blobs = TimedBlobStore(storage, blob_timeout)
        self.max_retries = max(1, max_retries)
        self.max_upload_size = max_upload_size

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_registrations(self) -> List[Registration]:
        return self.repository.list()

    def get_registration(self, registration_id: str) -> Registration:
        return self.repository.get_by_id(registration_id)

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------

    def create_registration(self, fields: Mapping[str, Any]) -> Registration:
        """Create a registration in contact-details/payment-processing.

        Raises:
            DuplicateIdentity: If the contact email already has a registration
        """
        registration = slots.align_to_directors(Registration(**fields))
        self.repository.insert(registration)
        registrations_created_total.inc()
        logger.info(
            f"Created registration {registration.id} for {registration.company_name}",
            extra={"registration_id": registration.id},
        )
        return self.repository.get_by_id(registration.id)

    async def update_registration(self, registration_id: str, fields: Mapping[str, Any]) -> Registration:
        """Apply a presence-aware partial update (PUT body).

        Plain fields are replaced; slot fields go through the slot manager so
        concurrent uploads to other slots are never dropped.
        """
        def apply(current: Registration) -> Registration:
            plain = {name: value for name, value in fields.items() if name not in _SLOT_FIELDS}
            updated = current.evolve(**plain) if plain else current
            for name, value in fields.items():
                if name in _SLOT_FIELDS:
                    updated = slots.apply_slot_payload(updated, _SLOT_FIELDS[name], value)
            if "directors" in fields:
                updated = slots.align_to_directors(updated)
            if fields.get("payment_receipt") is not None:
                updated = workflow.reopen_payment_review(updated)
            return updated

        before, after = self._mutate(registration_id, apply)
        for name in fields:
            if name in _SLOT_FIELDS:
                slot_mutations_total.labels(slot=_SLOT_FIELDS[name], operation="merge").inc()
        await self.blobs.discard(slots.displaced_attachments(before, after), "update")
        return after

    async def delete_registration(self, registration_id: str) -> Tuple[Registration, int]:
        """Delete the row, then every blob it referenced.

        Returns the deleted registration and the number of blobs that could
        not be removed.
        """
        deleted = self.repository.delete(registration_id)
        attachments = [item for _, _, item in slots.iter_attachments(deleted)]
        orphaned = await self.blobs.discard(attachments, "delete")
        logger.info(
            f"Deleted registration {registration_id} ({len(attachments)} files, {orphaned} orphaned)",
            extra={"registration_id": registration_id},
        )
        return deleted, orphaned

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def advance(self, registration_id: str) -> Registration:
        return self._transition(registration_id, workflow.advance, "advance")

    def publish_documents(self, registration_id: str) -> Registration:
        return self._transition(registration_id, workflow.publish_documents, "publish_documents")

    def acknowledge_documents(self, registration_id: str) -> Registration:
        return self._transition(registration_id, workflow.acknowledge_documents, "acknowledge_documents")

    def reject_payment(self, registration_id: str) -> Registration:
        return self._transition(registration_id, workflow.reject_payment, "reject_payment")

    def approve_gate(self, registration_id: str, gate: Gate, approved: bool = True) -> Registration:
        return self._transition(
            registration_id,
            lambda current: workflow.approve_gate(current, gate, approved),
            f"approve_{gate.attribute}",
        )

    async def merge_customer_documents(
        self,
        registration_id: str,
        bundle: Mapping[str, Any],
        documents_acknowledged: Optional[bool] = None,
    ) -> Registration:
        """Deep-merge customer-signed documents, optionally acknowledging.

        Raises:
            NotYetPublished: If acknowledging before the documents were published
        """
        def apply(current: Registration) -> Registration:
            updated = slots.merge_customer_documents(current, bundle)
            if documents_acknowledged:
                updated = workflow.acknowledge_documents(updated)
            return updated

        before, after = self._mutate(registration_id, apply)
        slot_mutations_total.labels(slot=slots.CUSTOMER_BUNDLE, operation="merge").inc()
        if documents_acknowledged:
            registration_transitions_total.labels(
                operation="acknowledge_documents", to_status=after.status.value
            ).inc()
        await self.blobs.discard(slots.displaced_attachments(before, after), "customer documents")
        return after

    async def update_balance_payment(
        self,
        registration_id: str,
        receipt: Optional[DocumentAttachment] = None,
        decision: Optional[ReviewStatus] = None,
        reviewed_by: Optional[str] = None,
    ) -> Registration:
        """Submit a balance payment receipt and/or record the admin decision."""
        def apply(current: Registration) -> Registration:
            updated = current
            if receipt is not None:
                pending = receipt.model_copy(
                    update={"review_status": ReviewStatus.PENDING, "reviewed_at": None, "reviewed_by": None}
                )
                updated = slots.set_single_slot(updated, "balancePaymentReceipt", pending)
            if decision is not None:
                updated = workflow.review_balance_payment(updated, decision, reviewed_by)
            return updated

        before, after = self._mutate(registration_id, apply)
        if decision is not None:
            registration_transitions_total.labels(
                operation=f"balance_payment_{decision.value}", to_status=after.status.value
            ).inc()
        await self.blobs.discard(slots.displaced_attachments(before, after), "balance payment")
        return after

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def upload_to_slot(
        self,
        registration_id: str,
        slot_name: str,
        content: bytes,
        filename: str,
        mime_type: Optional[str],
        index: Optional[int] = None,
        key: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Registration:
        """Store a file and attach it to a slot.

        The blob is written first; if the row update then fails the blob is
        deleted again before the error propagates.

        Raises:
            InvalidSlot, InvalidIndex, InvalidSlotKey, InvalidAttachment:
                Before anything is written
            BlobError: If the blob store fails or times out
        """
        spec = slots.get_slot_spec(slot_name)
        if spec.kind == SlotKind.INDEXED and index is None:
            raise InvalidIndex(f"Slot '{slot_name}' needs an index")
        if spec.kind == SlotKind.KEYED and not key:
            raise InvalidSlotKey(f"Slot '{slot_name}' needs a key")
        safe_name = ensure_valid_upload(filename, mime_type, len(content), self.max_upload_size)

        # Fail fast on a missing registration before touching the blob store
        self.repository.get_by_id(registration_id)

        stored = await self.blobs.store(content, safe_name, mime_type)
        attachment = DocumentAttachment.from_stored_file(
            stored,
            name=safe_name,
            title=title,
            signed_by_customer=True if spec.owner == SlotOwner.CUSTOMER else None,
        )

        def apply(current: Registration) -> Registration:
            if spec.kind == SlotKind.SINGLE:
                updated = slots.set_single_slot(current, slot_name, attachment)
            elif spec.kind == SlotKind.INDEXED:
                updated = slots.set_indexed_slot(current, slot_name, index, attachment)
            elif spec.kind == SlotKind.KEYED:
                updated = slots.set_keyed_slot(current, slot_name, key, attachment)
            else:
                updated = slots.append_to_list(current, slot_name, attachment)
            if slot_name == "paymentReceipt":
                updated = workflow.reopen_payment_review(updated)
            return updated

        try:
            before, after = self._mutate(registration_id, apply)
        except Exception:
            logger.warning(
                f"Row update failed after storing {stored.storage_key}; deleting the new blob",
                extra={"registration_id": registration_id, "storage_key": stored.storage_key},
            )
            await self.blobs.discard([attachment], "failed row update")
            raise

        slot_mutations_total.labels(slot=slot_name, operation="upload").inc()
        logger.info(
            f"Attached {stored.storage_key} to {slot_name} of registration {registration_id}",
            extra={"registration_id": registration_id, "slot": slot_name},
        )
        await self.blobs.discard(slots.displaced_attachments(before, after), "slot replacement")
        return after

    async def remove_attachment(self, registration_id: str, attachment_id: str) -> Registration:
        """Detach an attachment from its slot, then delete its blob.

        Raises:
            NotFound: If the registration or attachment does not exist
        """
        removed: List[Tuple[str, DocumentAttachment]] = []

        def apply(current: Registration) -> Registration:
            found = slots.find_attachment(current, attachment_id)
            updated, document = slots.detach_attachment(current, attachment_id)
            removed[:] = [(found[0], document)]
            return updated

        _, after = self._mutate(registration_id, apply)
        slot_name, document = removed[0]
        slot_mutations_total.labels(slot=slot_name, operation="remove").inc()
        await self.blobs.discard([document], "attachment removal")
        return after

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, registration_id: str, operation: Operation, label: str) -> Registration:
        _, after = self._mutate(registration_id, operation)
        registration_transitions_total.labels(operation=label, to_status=after.status.value).inc()
        logger.info(
            f"{label} on registration {registration_id}: now {after.current_step.value}/{after.status.value}",
            extra={"registration_id": registration_id},
        )
        return after

    def _mutate(self, registration_id: str, operation: Operation) -> Tuple[Registration, Registration]:
        """Read, apply ``operation``, compare-and-swap write; retry on conflict.

        Raises:
            ConcurrentModification: If every attempt lost the race
        """
        for attempt in range(1, self.max_retries + 1):
            current = self.repository.get_by_id(registration_id)
            updated = operation(current)
            try:
                return current, self.repository.save(current, updated)
            except ConcurrentModification:
                if attempt == self.max_retries:
                    registration_conflicts_total.labels(outcome="exhausted").inc()
                    logger.warning(
                        f"Giving up on registration {registration_id} after {attempt} conflicting writes",
                        extra={"registration_id": registration_id},
                    )
                    raise
                registration_conflicts_total.labels(outcome="retried").inc()
                logger.info(
                    f"Version conflict on registration {registration_id}, retrying ({attempt}/{self.max_retries})",
                    extra={"registration_id": registration_id},
                )
        raise ConcurrentModification(f"Registration {registration_id} could not be updated")
