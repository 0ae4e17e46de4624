"""Pydantic schemas for the Registrations API

Request bodies use the same camelCase keys as the registration resource.
Workflow fields (currentStep, status, gates) are not accepted here; they only
change through the workflow endpoints.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ..domain.documents.attachment import DocumentAttachment, ReviewStatus
from ..domain.registrations.models import PartyRecord


class _RequestBody(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        extra='forbid',
    )


# ============================================================================
# Registration bodies
# ============================================================================

class CompanyDetailsFields(_RequestBody):
    """Company-details fields shared by create and update bodies"""
    company_name_english: Optional[str] = None
    company_name_local: Optional[str] = None
    is_foreign_owned: Optional[bool] = None
    business_address_number: Optional[str] = None
    business_address_street: Optional[str] = None
    business_address_city: Optional[str] = None
    postal_code: Optional[str] = None
    share_price: Optional[str] = None
    number_of_shareholders: Optional[int] = Field(None, ge=0)
    shareholders: Optional[List[PartyRecord]] = None
    appoint_company_secretary: Optional[bool] = None
    number_of_directors: Optional[int] = Field(None, ge=0)
    directors: Optional[List[PartyRecord]] = None
    import_export_status: Optional[str] = None
    imports_to_add: Optional[str] = None
    exports_to_add: Optional[str] = None
    other_business_activities: Optional[str] = None
    local_division: Optional[str] = None
    business_email: Optional[str] = None
    business_contact_number: Optional[str] = None


class RegistrationCreate(CompanyDetailsFields):
    """Body for POST /registrations (contact-details step)"""
    company_name: str = Field(..., min_length=1)
    contact_person_name: str = Field(..., min_length=1)
    contact_person_email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    contact_person_phone: str = Field(..., min_length=1)
    selected_package: str = Field(..., min_length=1)
    payment_method: str = "bankTransfer"
    payment_receipt: Optional[DocumentAttachment] = None


class CustomerDocumentsUpdate(_RequestBody):
    """Partial customer-signed bundle; omitted and null entries are left alone"""
    form1: Optional[DocumentAttachment] = None
    letter_of_engagement: Optional[DocumentAttachment] = None
    aoa: Optional[DocumentAttachment] = None
    form18: Optional[List[Optional[DocumentAttachment]]] = None
    address_proof: Optional[DocumentAttachment] = None
    step3_signed_additional_doc: Optional[Dict[str, DocumentAttachment]] = None


class RegistrationUpdate(CompanyDetailsFields):
    """Body for PUT /registrations/{id}

    Presence-aware: a key that is absent leaves the field untouched, an
    explicit ``null`` clears it. Slot values merge additively (list entries
    the client did not send are kept).
    """
    company_name: Optional[str] = None
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[str] = Field(None, pattern=r"^[^@\s]+@[^@\s]+$")
    contact_person_phone: Optional[str] = None
    selected_package: Optional[str] = None
    payment_method: Optional[str] = None

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
    customer_documents: Optional[CustomerDocumentsUpdate] = None

    def provided_fields(self) -> Dict[str, object]:
        """Fields the client actually sent, as model values (not dumped)."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class CustomerDocumentsRequest(CustomerDocumentsUpdate):
    """Body for PUT /registrations/{id}/customer-documents"""
    documents_acknowledged: Optional[bool] = None

    def bundle(self) -> Dict[str, object]:
        """The document part of the body, keyed by camelCase field name."""
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            exclude={"documents_acknowledged"},
        )


# ============================================================================
# Workflow bodies
# ============================================================================

class GateApproval(_RequestBody):
    """Body for POST /registrations/{id}/approvals/{gate}"""
    approved: bool = True


class BalancePaymentUpdate(_RequestBody):
    """Body for PUT /registrations/{id}/balance-payment

    The customer submits ``receipt``; the admin records ``decision``. Both may
    come in one request.
    """
    receipt: Optional[DocumentAttachment] = None
    decision: Optional[ReviewStatus] = None
    reviewed_by: Optional[str] = None

    @model_validator(mode="after")
    def _needs_receipt_or_decision(self) -> "BalancePaymentUpdate":
        if self.receipt is None and self.decision is None:
            raise ValueError("receipt or decision is required")
        return self


class RegistrationDeleted(BaseModel):
    id: str
    deleted: bool = True
    orphaned_files: int = Field(0, serialization_alias="orphanedFiles")
