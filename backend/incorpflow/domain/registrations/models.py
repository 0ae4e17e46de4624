"""
Domain models for the registration aggregate.

These are Pydantic models; the API serializes them with camelCase aliases
(``currentStep``, ``step3AdditionalDoc`` ...) and the repository maps them to
the flattened ``registrations`` columns.
"""
import secrets
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..documents.attachment import DocumentAttachment
from .status import RegistrationStatus, RegistrationStep


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_registration_id() -> str:
    """Generate a registration id of the form ``reg_<epoch-millis>_<random>``."""
    return f"reg_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


_camel_config = ConfigDict(
    populate_by_name=True,
    alias_generator=to_camel,
    validate_assignment=False,
)


class PartyRecord(BaseModel):
    """Director or shareholder entry from the company details step.

    Only ``name`` is interpreted; any other detail fields (NIC, address,
    email, phone, share count ...) are carried through unchanged.
    """
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="allow")

    name: str = ""


class CustomerDocuments(BaseModel):
    """Customer-signed counterparts of the admin templates."""
    model_config = _camel_config

    form1: Optional[DocumentAttachment] = None
    letter_of_engagement: Optional[DocumentAttachment] = None
    aoa: Optional[DocumentAttachment] = None
    form18: Optional[List[Optional[DocumentAttachment]]] = None
    address_proof: Optional[DocumentAttachment] = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)


class Registration(BaseModel):
    """One customer's company-incorporation application.

    Holds identity, contact details, workflow state, company details and
    every document slot. Workflow helpers and slot operations never mutate an
    instance in place; they return updated copies.
    """
    model_config = _camel_config

    id: str = Field(default_factory=generate_registration_id)

    # Contact / package
    company_name: Optional[str] = None
    company_name_english: Optional[str] = None
    company_name_local: Optional[str] = None
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[str] = None
    contact_person_phone: Optional[str] = None
    selected_package: Optional[str] = None
    payment_method: Optional[str] = "bankTransfer"

    # Workflow
    current_step: RegistrationStep = RegistrationStep.CONTACT_DETAILS
    status: RegistrationStatus = RegistrationStatus.PAYMENT_PROCESSING
    payment_approved: bool = False
    details_approved: bool = False
    documents_approved: bool = False
    documents_published: bool = False
    documents_acknowledged: bool = False
    documents_published_at: Optional[datetime] = None

    # Company details
    is_foreign_owned: Optional[bool] = None
    business_address_number: Optional[str] = None
    business_address_street: Optional[str] = None
    business_address_city: Optional[str] = None
    postal_code: Optional[str] = None
    share_price: Optional[str] = None
    number_of_shareholders: Optional[int] = None
    shareholders: Optional[List[PartyRecord]] = None
    appoint_company_secretary: Optional[bool] = None
    number_of_directors: Optional[int] = None
    directors: Optional[List[PartyRecord]] = None
    import_export_status: Optional[str] = None
    imports_to_add: Optional[str] = None
    exports_to_add: Optional[str] = None
    other_business_activities: Optional[str] = None
    local_division: Optional[str] = None
    business_email: Optional[str] = None
    business_contact_number: Optional[str] = None

    # Document slots
    payment_receipt: Optional[DocumentAttachment] = None
    balance_payment_receipt: Optional[DocumentAttachment] = None
    form1: Optional[DocumentAttachment] = None
    letter_of_engagement: Optional[DocumentAttachment] = None
    aoa: Optional[DocumentAttachment] = None
    form18: Optional[List[Optional[DocumentAttachment]]] = None
    address_proof: Optional[DocumentAttachment] = None
    incorporation_certificate: Optional[DocumentAttachment] = None
    step3_additional_doc: Optional[List[DocumentAttachment]] = None
    step3_signed_additional_doc: Optional[Dict[str, DocumentAttachment]] = None
    step4_final_additional_doc: Optional[List[DocumentAttachment]] = None
    customer_documents: Optional[CustomerDocuments] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0

    @property
    def director_count(self) -> Optional[int]:
        """Number of directors when the directors list is known."""
        if self.directors:
            return len(self.directors)
        return None

    def evolve(self, **changes) -> "Registration":
        """Return a deep copy with ``changes`` applied and ``updated_at`` bumped.

        ``updated_at`` never moves backwards, even if the clock does.
        """
        now = utcnow()
        last = self.updated_at
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        if now < last:
            now = last
        changes.setdefault("updated_at", now)
        return self.model_copy(update=changes, deep=True)
