"""Document slot manager.

A registration holds its documents in named slots of four kinds:

- SINGLE: one attachment (``form1``, ``paymentReceipt`` ...)
- INDEXED: positional list aligned to the directors (``form18``); gaps are
  ``None`` placeholders and positions are never compacted
- KEYED: mapping keyed by the title of the admin document it answers
  (``step3SignedAdditionalDoc``)
- APPEND_LIST: ordered, append-only list (``step3AdditionalDoc``,
  ``step4FinalAdditionalDoc``)

Each kind has exactly one implementation below, shared by every slot of that
kind. All operations are pure: they return an updated copy and leave every
other slot untouched.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel

from ..documents.attachment import DocumentAttachment
from ..errors import (
    InvalidAttachment,
    InvalidIndex,
    InvalidSlot,
    InvalidSlotKey,
    NotFound,
)
from .models import CustomerDocuments, Registration


class SlotKind(str, Enum):
    SINGLE = "single"
    INDEXED = "indexed"
    KEYED = "keyed"
    APPEND_LIST = "append_list"


class SlotOwner(str, Enum):
    """Who provides the documents in a slot."""
    ADMIN = "admin"
    CUSTOMER = "customer"


CUSTOMER_BUNDLE = "customerDocuments"


@dataclass(frozen=True)
class SlotSpec:
    """Registry entry for one document slot.

    Attributes:
        name: Public slot name (``form1``, ``customerDocuments.form18``)
        attribute: Attribute on the Registration (or on CustomerDocuments)
        kind: Slot kind
        owner: Document provenance
        in_customer_bundle: Slot lives inside ``customer_documents``
        aligned_to_directors: Positions correspond to director positions
        requires_title: Every entry must carry a unique title
        keys_from: List slot whose titles bound the keys of a KEYED slot
    """
    name: str
    attribute: str
    kind: SlotKind
    owner: SlotOwner = SlotOwner.ADMIN
    in_customer_bundle: bool = False
    aligned_to_directors: bool = False
    requires_title: bool = False
    keys_from: Optional[str] = None


_SLOT_SPECS = (
    SlotSpec("paymentReceipt", "payment_receipt", SlotKind.SINGLE, SlotOwner.CUSTOMER),
    SlotSpec("balancePaymentReceipt", "balance_payment_receipt", SlotKind.SINGLE, SlotOwner.CUSTOMER),
    SlotSpec("form1", "form1", SlotKind.SINGLE),
    SlotSpec("letterOfEngagement", "letter_of_engagement", SlotKind.SINGLE),
    SlotSpec("aoa", "aoa", SlotKind.SINGLE),
    SlotSpec("addressProof", "address_proof", SlotKind.SINGLE),
    SlotSpec("incorporationCertificate", "incorporation_certificate", SlotKind.SINGLE),
    SlotSpec("form18", "form18", SlotKind.INDEXED, aligned_to_directors=True),
    SlotSpec("step3AdditionalDoc", "step3_additional_doc", SlotKind.APPEND_LIST, requires_title=True),
    SlotSpec(
        "step3SignedAdditionalDoc",
        "step3_signed_additional_doc",
        SlotKind.KEYED,
        SlotOwner.CUSTOMER,
        keys_from="step3AdditionalDoc",
    ),
    SlotSpec("step4FinalAdditionalDoc", "step4_final_additional_doc", SlotKind.APPEND_LIST),
    SlotSpec("customerDocuments.form1", "form1", SlotKind.SINGLE, SlotOwner.CUSTOMER, in_customer_bundle=True),
    SlotSpec(
        "customerDocuments.letterOfEngagement",
        "letter_of_engagement",
        SlotKind.SINGLE,
        SlotOwner.CUSTOMER,
        in_customer_bundle=True,
    ),
    SlotSpec("customerDocuments.aoa", "aoa", SlotKind.SINGLE, SlotOwner.CUSTOMER, in_customer_bundle=True),
    SlotSpec(
        "customerDocuments.form18",
        "form18",
        SlotKind.INDEXED,
        SlotOwner.CUSTOMER,
        in_customer_bundle=True,
        aligned_to_directors=True,
    ),
    SlotSpec(
        "customerDocuments.addressProof",
        "address_proof",
        SlotKind.SINGLE,
        SlotOwner.CUSTOMER,
        in_customer_bundle=True,
    ),
)

SLOTS: Dict[str, SlotSpec] = {spec.name: spec for spec in _SLOT_SPECS}

# Bundle fields accepted by merge_customer_documents, mapped to slot names
CUSTOMER_MERGE_FIELDS: Dict[str, str] = {
    "form1": "customerDocuments.form1",
    "letterOfEngagement": "customerDocuments.letterOfEngagement",
    "aoa": "customerDocuments.aoa",
    "form18": "customerDocuments.form18",
    "addressProof": "customerDocuments.addressProof",
    "step3SignedAdditionalDoc": "step3SignedAdditionalDoc",
}

Position = Union[None, int, str]


# =============================================================================
# REGISTRY ACCESS
# =============================================================================

def get_slot_spec(slot_name: str, kind: Optional[SlotKind] = None) -> SlotSpec:
    """Look up a slot, optionally checking its kind.

    Raises:
        InvalidSlot: Unknown slot name or kind mismatch
    """
    spec = SLOTS.get(slot_name)
    if spec is None:
        raise InvalidSlot(f"Unknown document slot '{slot_name}'")
    if kind is not None and spec.kind != kind:
        raise InvalidSlot(
            f"Slot '{slot_name}' is a {spec.kind.value} slot, not {kind.value}"
        )
    return spec


def get_slot_value(registration: Registration, slot_name: str) -> Any:
    spec = get_slot_spec(slot_name)
    return _read(registration, spec)


def _read(registration: Registration, spec: SlotSpec) -> Any:
    if spec.in_customer_bundle:
        bundle = registration.customer_documents
        return getattr(bundle, spec.attribute) if bundle is not None else None
    return getattr(registration, spec.attribute)


def _write(registration: Registration, spec: SlotSpec, value: Any) -> Registration:
    if isinstance(value, (list, dict)) and not value:
        value = None
    if spec.in_customer_bundle:
        bundle = registration.customer_documents or CustomerDocuments()
        bundle = bundle.model_copy(update={spec.attribute: value})
        return registration.evolve(customer_documents=None if bundle.is_empty() else bundle)
    return registration.evolve(**{spec.attribute: value})


def _coerce(attachment: Any) -> DocumentAttachment:
    if attachment is None:
        raise InvalidAttachment("Attachment is required")
    return DocumentAttachment.from_payload(attachment)


# =============================================================================
# SINGLE
# =============================================================================

def set_single_slot(
    registration: Registration,
    slot_name: str,
    attachment: Optional[DocumentAttachment],
) -> Registration:
    """Replace exactly one single-document slot (``None`` clears it)."""
    spec = get_slot_spec(slot_name, SlotKind.SINGLE)
    value = _coerce(attachment) if attachment is not None else None
    return _write(registration, spec, value)


# =============================================================================
# INDEXED
# =============================================================================

def _check_index(spec: SlotSpec, index: Any) -> int:
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidIndex(f"Index for slot '{spec.name}' must be an integer (got {index!r})")
    if index < 0:
        raise InvalidIndex(f"Index for slot '{spec.name}' must be >= 0 (got {index})")
    return index


def set_indexed_slot(
    registration: Registration,
    slot_name: str,
    index: int,
    attachment: DocumentAttachment,
) -> Registration:
    """Set position ``index`` of an indexed slot, padding with ``None``.

    Raises:
        InvalidIndex: Negative or non-integer index
    """
    spec = get_slot_spec(slot_name, SlotKind.INDEXED)
    index = _check_index(spec, index)
    document = _coerce(attachment)

    items: List[Optional[DocumentAttachment]] = list(_read(registration, spec) or [])
    if index >= len(items):
        items.extend([None] * (index + 1 - len(items)))
    items[index] = document
    return _write(registration, spec, items)


def clear_indexed_position(registration: Registration, slot_name: str, index: int) -> Registration:
    """Empty one position, keeping the placeholder so indices stay stable."""
    spec = get_slot_spec(slot_name, SlotKind.INDEXED)
    index = _check_index(spec, index)
    items = list(_read(registration, spec) or [])
    if index >= len(items) or items[index] is None:
        return registration
    items[index] = None
    if all(item is None for item in items):
        items = []
    return _write(registration, spec, items)


def align_to_directors(registration: Registration) -> Registration:
    """Pad every director-aligned slot up to the directors count.

    Slots are never truncated: positions past a shrunk directors list keep
    their documents.
    """
    count = registration.director_count
    if count is None:
        return registration

    updated = registration
    for spec in SLOTS.values():
        if not spec.aligned_to_directors:
            continue
        items = _read(updated, spec)
        if items and len(items) < count:
            updated = _write(updated, spec, list(items) + [None] * (count - len(items)))
    return updated


# =============================================================================
# APPEND LIST
# =============================================================================

def append_to_list(
    registration: Registration,
    slot_name: str,
    attachment: DocumentAttachment,
) -> Registration:
    """Append to an append-only list, preserving all prior entries.

    Raises:
        InvalidAttachment: Duplicate id, or missing/duplicate title where titles are required
    """
    spec = get_slot_spec(slot_name, SlotKind.APPEND_LIST)
    document = _coerce(attachment)
    items: List[DocumentAttachment] = list(_read(registration, spec) or [])

    if any(item.id == document.id for item in items):
        raise InvalidAttachment(f"Attachment {document.id} is already in '{slot_name}'")
    if spec.requires_title:
        if not document.title:
            raise InvalidAttachment(f"Documents in '{slot_name}' need a title")
        if any(item.title == document.title for item in items):
            raise InvalidAttachment(f"'{slot_name}' already has a document titled '{document.title}'")

    items.append(document)
    return _write(registration, spec, items)


def remove_from_list(registration: Registration, slot_name: str, match_id: str) -> Registration:
    """Remove the entry with ``id == match_id``; no-op if it is not there."""
    spec = get_slot_spec(slot_name, SlotKind.APPEND_LIST)
    items = list(_read(registration, spec) or [])
    remaining = [item for item in items if item.id != match_id]
    if len(remaining) == len(items):
        return registration
    return _write(registration, spec, remaining)


# =============================================================================
# KEYED
# =============================================================================

def published_titles(registration: Registration, slot_name: str) -> List[str]:
    spec = get_slot_spec(slot_name, SlotKind.APPEND_LIST)
    return [item.title for item in (_read(registration, spec) or []) if item.title]


def set_keyed_slot(
    registration: Registration,
    slot_name: str,
    key: str,
    attachment: DocumentAttachment,
) -> Registration:
    """Insert or overwrite one entry of a keyed slot.

    Raises:
        InvalidSlotKey: Empty key, or a key that is not a published title
    """
    spec = get_slot_spec(slot_name, SlotKind.KEYED)
    if not isinstance(key, str) or not key.strip():
        raise InvalidSlotKey(f"Slot '{slot_name}' needs a non-empty key")
    if spec.keys_from and key not in published_titles(registration, spec.keys_from):
        raise InvalidSlotKey(
            f"'{key}' is not a document title in '{spec.keys_from}'"
        )

    entries: Dict[str, DocumentAttachment] = dict(_read(registration, spec) or {})
    entries[key] = _coerce(attachment)
    return _write(registration, spec, entries)


def remove_keyed_entry(registration: Registration, slot_name: str, key: str) -> Registration:
    spec = get_slot_spec(slot_name, SlotKind.KEYED)
    entries = dict(_read(registration, spec) or {})
    if key not in entries:
        return registration
    del entries[key]
    return _write(registration, spec, entries)


# =============================================================================
# CUSTOMER BUNDLE
# =============================================================================

def merge_customer_documents(
    registration: Registration,
    partial: Mapping[str, Any],
) -> Registration:
    """Deep-merge a partial customer bundle.

    Only fields present and non-null in ``partial`` change. ``form18`` merges
    position by position (``None`` entries leave the stored position alone),
    ``step3SignedAdditionalDoc`` merges key by key.

    Raises:
        InvalidSlot: Unknown bundle field
    """
    unknown = sorted(set(partial) - set(CUSTOMER_MERGE_FIELDS))
    if unknown:
        raise InvalidSlot(f"Unknown customer document field(s): {', '.join(unknown)}")

    updated = registration
    for field, slot_name in CUSTOMER_MERGE_FIELDS.items():
        value = partial.get(field)
        if value is None:
            continue
        updated = _merge_value(updated, get_slot_spec(slot_name), value)
    return updated


def _merge_value(registration: Registration, spec: SlotSpec, value: Any) -> Registration:
    if spec.kind == SlotKind.SINGLE:
        return set_single_slot(registration, spec.name, value)

    if spec.kind == SlotKind.INDEXED:
        if not isinstance(value, list):
            raise InvalidSlot(f"Slot '{spec.name}' expects a list")
        for index, item in enumerate(value):
            if item is not None:
                registration = set_indexed_slot(registration, spec.name, index, item)
        return registration

    if spec.kind == SlotKind.KEYED:
        if not isinstance(value, Mapping):
            raise InvalidSlot(f"Slot '{spec.name}' expects an object keyed by title")
        for key, item in value.items():
            if item is not None:
                registration = set_keyed_slot(registration, spec.name, key, item)
        return registration

    if not isinstance(value, list):
        raise InvalidSlot(f"Slot '{spec.name}' expects a list")
    existing = {item.id for item in (_read(registration, spec) or [])}
    for item in value:
        document = _coerce(item)
        if document.id not in existing:
            registration = append_to_list(registration, spec.name, document)
            existing.add(document.id)
    return registration


def apply_slot_payload(registration: Registration, slot_name: str, value: Any) -> Registration:
    """Apply one slot value from a partial update body.

    An explicit ``None`` clears the slot. Any other value is merged with the
    kind's additive semantics, so entries the client did not send survive.
    """
    if slot_name == CUSTOMER_BUNDLE:
        if value is None:
            return registration.evolve(customer_documents=None)
        if isinstance(value, BaseModel):
            value = value.model_dump(by_alias=True, exclude_none=True)
        if not isinstance(value, Mapping):
            raise InvalidSlot("customerDocuments expects an object")
        return merge_customer_documents(registration, value)

    spec = get_slot_spec(slot_name)
    if value is None:
        return _write(registration, spec, None)
    return _merge_value(registration, spec, value)


# =============================================================================
# LOOKUP / BOOKKEEPING
# =============================================================================

def iter_attachments(registration: Registration) -> Iterator[Tuple[str, Position, DocumentAttachment]]:
    """Yield ``(slot_name, position, attachment)`` for every stored document."""
    for spec in SLOTS.values():
        value = _read(registration, spec)
        if value is None:
            continue
        if spec.kind == SlotKind.SINGLE:
            yield spec.name, None, value
        elif spec.kind == SlotKind.KEYED:
            for key, item in value.items():
                yield spec.name, key, item
        else:
            for index, item in enumerate(value):
                if item is not None:
                    yield spec.name, index, item


def find_attachment(
    registration: Registration,
    attachment_id: str
) -> Optional[Tuple[str, Position, DocumentAttachment]]:
    for slot_name, position, item in iter_attachments(registration):
        if item.id == attachment_id:
            return slot_name, position, item
    return None


def detach_attachment(
    registration: Registration,
    attachment_id: str
) -> Tuple[Registration, DocumentAttachment]:
    """Remove an attachment from whichever slot holds it.

    Indexed slots keep a ``None`` placeholder at the freed position.

    Raises:
        NotFound: If no slot holds the attachment
    """
    found = find_attachment(registration, attachment_id)
    if found is None:
        raise NotFound(f"Attachment {attachment_id} not found on registration {registration.id}")

    slot_name, position, document = found
    spec = SLOTS[slot_name]
    if spec.kind == SlotKind.SINGLE:
        updated = set_single_slot(registration, slot_name, None)
    elif spec.kind == SlotKind.INDEXED:
        updated = clear_indexed_position(registration, slot_name, position)
    elif spec.kind == SlotKind.KEYED:
        updated = remove_keyed_entry(registration, slot_name, position)
    else:
        updated = remove_from_list(registration, slot_name, attachment_id)
    return updated, document


def displaced_attachments(before: Registration, after: Registration) -> List[DocumentAttachment]:
    """Attachments present in ``before`` but gone from ``after``.

    Their blobs can be deleted once ``after`` is committed.
    """
    kept = {item.id for _, _, item in iter_attachments(after)}
    seen = set()
    displaced = []
    for _, _, item in iter_attachments(before):
        if item.id not in kept and item.id not in seen:
            seen.add(item.id)
            displaced.append(item)
    return displaced
