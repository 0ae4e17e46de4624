"""Step transition engine for registrations.

Pure functions over the Registration aggregate: they validate a move against
the tables in ``status.py`` and return an updated copy. Nothing here touches
the store; callers persist the returned aggregate.
"""

import logging
from typing import List, Optional

from ..documents.attachment import ReviewStatus
from ..errors import InvalidSlot, InvalidState, NotYetPublished, PreconditionNotMet
from .models import Registration, utcnow
from .slots import get_slot_value
from .status import (
    ADMIN_GATES,
    Gate,
    RegistrationStatus,
    RegistrationStep,
    find_advance_rule,
    is_consistent,
    step_number,
)

logger = logging.getLogger(__name__)


def ensure_consistent(step: RegistrationStep, status: RegistrationStatus) -> None:
    """Raise InvalidState if (step, status) is not in the canonical mapping."""
    if not is_consistent(step, status):
        raise InvalidState(
            f"Status '{status.value}' is not valid for step '{step.value}'"
        )


def missing_requirements(registration: Registration) -> List[str]:
    """List the gates and slots still blocking an advance.

    Returns an empty list when the registration can advance. A terminal
    registration reports ``["terminal"]``.
    """
    rule = find_advance_rule(registration.current_step, registration.status)
    if rule is None:
        return ["terminal"]

    missing = [gate.value for gate in rule.gates if not getattr(registration, gate.attribute)]

    for slot_name in rule.required_slots:
        if get_slot_value(registration, slot_name) is None:
            missing.append(slot_name)

    if registration.current_step == RegistrationStep.DOCUMENTATION and _balance_payment_rejected(registration):
        missing.append("balancePaymentReceipt")

    return missing


def can_advance(registration: Registration) -> bool:
    """Pure check of the current step's gates."""
    return not missing_requirements(registration)


def advance(registration: Registration) -> Registration:
    """Move the registration to the next (step, status) pair.

    Raises:
        InvalidState: If the registration is in a terminal state
        PreconditionNotMet: If a required gate or document is missing
    """
    ensure_consistent(registration.current_step, registration.status)

    rule = find_advance_rule(registration.current_step, registration.status)
    if rule is None:
        raise InvalidState(
            f"Registration {registration.id} is already {registration.status.value}"
        )

    missing = missing_requirements(registration)
    if missing:
        raise PreconditionNotMet(
            f"Cannot advance from {registration.current_step.value}: "
            f"missing {', '.join(missing)}",
            missing=missing,
        )

    logger.info(
        f"Advancing registration {registration.id}: "
        f"{registration.current_step.value}/{registration.status.value} -> "
        f"{rule.to_step.value}/{rule.to_status.value}"
    )
    return registration.evolve(current_step=rule.to_step, status=rule.to_status)


def approve_gate(registration: Registration, gate: Gate, approved: bool = True) -> Registration:
    """Set one of the admin approval gates.

    Raises:
        InvalidSlot: If the gate is not an admin approval gate
    """
    if gate not in ADMIN_GATES:
        raise InvalidSlot(f"Gate '{gate.value}' cannot be set directly")
    changes = {gate.attribute: approved}
    if gate == Gate.PAYMENT_APPROVED and approved and registration.status == RegistrationStatus.PAYMENT_REJECTED:
        changes["status"] = RegistrationStatus.PAYMENT_PROCESSING
    return registration.evolve(**changes)


def publish_documents(registration: Registration) -> Registration:
    """Expose the admin templates to the customer.

    Raises:
        InvalidState: Unless the registration is documentation/documentation-processing
    """
    if (
        registration.current_step != RegistrationStep.DOCUMENTATION
        or registration.status != RegistrationStatus.DOCUMENTATION_PROCESSING
    ):
        raise InvalidState(
            "Documents can only be published during documentation/documentation-processing "
            f"(current: {registration.current_step.value}/{registration.status.value})"
        )
    return registration.evolve(
        documents_published=True,
        documents_published_at=utcnow(),
        status=RegistrationStatus.DOCUMENTS_PUBLISHED,
    )


def acknowledge_documents(registration: Registration) -> Registration:
    """Customer confirms receipt/signing of the published documents.

    Raises:
        NotYetPublished: If the admin has not published the documents
    """
    if not registration.documents_published:
        raise NotYetPublished(
            f"Documents for registration {registration.id} have not been published yet"
        )

    changes = {"documents_acknowledged": True}
    if registration.current_step == RegistrationStep.DOCUMENTATION:
        changes["status"] = RegistrationStatus.DOCUMENTS_SUBMITTED
    return registration.evolve(**changes)


def reject_payment(registration: Registration) -> Registration:
    """Admin rejects the initial payment receipt.

    Raises:
        InvalidState: Outside the contact-details step
    """
    if registration.current_step != RegistrationStep.CONTACT_DETAILS:
        raise InvalidState(
            f"Payment can only be rejected during contact-details "
            f"(current: {registration.current_step.value})"
        )
    return registration.evolve(
        payment_approved=False,
        status=RegistrationStatus.PAYMENT_REJECTED,
    )


def reopen_payment_review(registration: Registration) -> Registration:
    """Put a rejected payment back into review once a new receipt arrives."""
    if registration.status != RegistrationStatus.PAYMENT_REJECTED:
        return registration
    return registration.evolve(status=RegistrationStatus.PAYMENT_PROCESSING)


def review_balance_payment(
    registration: Registration,
    decision: ReviewStatus,
    reviewer: Optional[str] = None,
) -> Registration:
    """Record the admin decision on the balance payment receipt.

    A rejection at or past the documentation step sends the registration back
    to documentation so the customer can upload a new receipt. Earlier steps
    only record the review; they still have to pass their own gates.

    Raises:
        InvalidState: If no balance payment receipt was submitted
    """
    receipt = registration.balance_payment_receipt
    if receipt is None:
        raise InvalidState(f"Registration {registration.id} has no balance payment receipt")

    changes = {"balance_payment_receipt": receipt.with_review(decision, reviewer)}
    sends_back = stage_number(registration) >= step_number(RegistrationStep.DOCUMENTATION)
    if decision == ReviewStatus.REJECTED and sends_back:
        changes["current_step"] = RegistrationStep.DOCUMENTATION
        changes["status"] = (
            RegistrationStatus.DOCUMENTS_PUBLISHED
            if registration.documents_published
            else RegistrationStatus.DOCUMENTATION_PROCESSING
        )
    return registration.evolve(**changes)


def stage_number(registration: Registration) -> int:
    """Progress position (1-4) derived from the persisted step."""
    return step_number(registration.current_step)


def is_incorporation_stage(registration: Registration) -> bool:
    return registration.current_step == RegistrationStep.INCORPORATE


def _balance_payment_rejected(registration: Registration) -> bool:
    receipt = registration.balance_payment_receipt
    return receipt is not None and receipt.review_status == ReviewStatus.REJECTED
