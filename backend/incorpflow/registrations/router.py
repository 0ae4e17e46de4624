"""Registrations API Router

CRUD on registrations, the workflow endpoints (advance, publish, acknowledge,
approvals, payment review) and document uploads into slots. Errors raised by
the service are RegistrationError subclasses, rendered by the app-level
exception handler as ``{"error": kind, "message": ...}``.
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ..dependencies import get_registration_service
from ..domain.registrations.models import Registration
from ..domain.registrations.status import Gate
from .schemas import (
    BalancePaymentUpdate,
    CustomerDocumentsRequest,
    GateApproval,
    RegistrationCreate,
    RegistrationDeleted,
    RegistrationUpdate,
)
from .service import RegistrationService

router = APIRouter(prefix="/registrations", tags=["Registrations"])

Service = Annotated[RegistrationService, Depends(get_registration_service)]


# =============================================================================
# CRUD
# =============================================================================

@router.get("", response_model=List[Registration], summary="List registrations, newest first")
def list_registrations(service: Service):
    return service.list_registrations()


@router.post(
    "",
    response_model=Registration,
    status_code=status.HTTP_201_CREATED,
    summary="Create a registration",
)
def create_registration(body: RegistrationCreate, service: Service):
    """Start a registration at contact-details/payment-processing.

    The id is generated server-side (``reg_<epoch-millis>_<random>``).
    """
    fields = {name: getattr(body, name) for name in type(body).model_fields}
    return service.create_registration(fields)


@router.get("/{registration_id}", response_model=Registration)
def get_registration(registration_id: str, service: Service):
    return service.get_registration(registration_id)


@router.put("/{registration_id}", response_model=Registration, summary="Partially update a registration")
async def update_registration(registration_id: str, body: RegistrationUpdate, service: Service):
    """Presence-aware partial update.

    Absent keys are untouched and ``null`` clears a field. Unknown keys,
    including workflow fields such as ``currentStep`` or ``paymentApproved``,
    are rejected with 422; use the workflow endpoints for those.
    """
    return await service.update_registration(registration_id, body.provided_fields())


@router.delete("/{registration_id}", response_model=RegistrationDeleted)
async def delete_registration(registration_id: str, service: Service):
    """Delete the registration row, then its stored files."""
    deleted, orphaned = await service.delete_registration(registration_id)
    return RegistrationDeleted(id=deleted.id, orphaned_files=orphaned)


# =============================================================================
# WORKFLOW
# =============================================================================

@router.post("/{registration_id}/advance", response_model=Registration)
def advance_registration(registration_id: str, service: Service):
    """Move to the next step once the current step's gates are satisfied.

    Returns 400 ``precondition_not_met`` with the ``missing`` gates otherwise.
    """
    return service.advance(registration_id)


@router.post("/{registration_id}/publish-documents", response_model=Registration)
def publish_documents(registration_id: str, service: Service):
    return service.publish_documents(registration_id)


@router.post("/{registration_id}/acknowledge-documents", response_model=Registration)
def acknowledge_documents(registration_id: str, service: Service):
    return service.acknowledge_documents(registration_id)


@router.post("/{registration_id}/reject-payment", response_model=Registration)
def reject_payment(registration_id: str, service: Service):
    return service.reject_payment(registration_id)


@router.post("/{registration_id}/approvals/{gate}", response_model=Registration)
def set_approval(
    registration_id: str,
    gate: Gate,
    service: Service,
    body: Optional[GateApproval] = None,
):
    """Set paymentApproved, detailsApproved or documentsApproved."""
    approved = body.approved if body is not None else True
    return service.approve_gate(registration_id, gate, approved)


@router.put("/{registration_id}/customer-documents", response_model=Registration)
async def update_customer_documents(
    registration_id: str,
    body: CustomerDocumentsRequest,
    service: Service,
):
    """Deep-merge customer-signed documents.

    ``form18`` merges position by position and ``step3SignedAdditionalDoc``
    key by key; documents not mentioned in the body are kept. Passing
    ``documentsAcknowledged: true`` acknowledges in the same write.
    """
    return await service.merge_customer_documents(
        registration_id,
        body.bundle(),
        documents_acknowledged=body.documents_acknowledged,
    )


@router.put("/{registration_id}/balance-payment", response_model=Registration)
async def update_balance_payment(
    registration_id: str,
    body: BalancePaymentUpdate,
    service: Service,
):
    return await service.update_balance_payment(
        registration_id,
        receipt=body.receipt,
        decision=body.decision,
        reviewed_by=body.reviewed_by,
    )


# =============================================================================
# FILES
# =============================================================================

@router.post(
    "/{registration_id}/slots/{slot_name}",
    response_model=Registration,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a file into a document slot",
)
async def upload_to_slot(
    registration_id: str,
    slot_name: str,
    service: Service,
    file: Annotated[UploadFile, File(...)],
    index: Annotated[Optional[int], Form()] = None,
    key: Annotated[Optional[str], Form()] = None,
    title: Annotated[Optional[str], Form()] = None,
):
    """Store the file, then attach it to ``slot_name``.

    ``index`` is required for ``form18`` and ``customerDocuments.form18``,
    ``key`` (an admin document title) for ``step3SignedAdditionalDoc``, and
    ``title`` for ``step3AdditionalDoc``.

    Example:
        curl -X POST http://localhost:8000/api/registrations/$ID/slots/form18 \\
             -F "file=@form18-director2.pdf" -F "index=1"
    """
    content = await file.read()
    return await service.upload_to_slot(
        registration_id,
        slot_name,
        content=content,
        filename=file.filename or "",
        mime_type=file.content_type,
        index=index,
        key=key,
        title=title,
    )


@router.delete("/{registration_id}/attachments/{attachment_id}", response_model=Registration)
async def remove_attachment(registration_id: str, attachment_id: str, service: Service):
    """Detach a document from whichever slot holds it and delete the file."""
    return await service.remove_attachment(registration_id, attachment_id)
