"""Registration step/status state machine tables.

The canonical (step, status) mapping and the advance rules live here as plain
data. Every workflow check in the code base consults these tables through
the helpers below instead of comparing step or status strings.

State Flow:
    contact-details/payment-processing
        -> company-details/documentation-processing
        -> documentation/documentation-processing
           (documents-published, documents-submitted)
        -> incorporate/incorporation-processing
        -> incorporate/completed

Terminal State: incorporate/completed
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


class RegistrationStep(str, Enum):
    """Workflow phase of a registration."""
    CONTACT_DETAILS = "contact-details"
    COMPANY_DETAILS = "company-details"
    DOCUMENTATION = "documentation"
    INCORPORATE = "incorporate"


class RegistrationStatus(str, Enum):
    """Processing state within a step."""
    PAYMENT_PROCESSING = "payment-processing"
    PAYMENT_REJECTED = "payment-rejected"
    DOCUMENTATION_PROCESSING = "documentation-processing"
    DOCUMENTS_PUBLISHED = "documents-published"
    DOCUMENTS_SUBMITTED = "documents-submitted"
    INCORPORATION_PROCESSING = "incorporation-processing"
    COMPLETED = "completed"


class Gate(str, Enum):
    """Boolean flags that unlock step advancement."""
    PAYMENT_APPROVED = "paymentApproved"
    DETAILS_APPROVED = "detailsApproved"
    DOCUMENTS_APPROVED = "documentsApproved"
    DOCUMENTS_PUBLISHED = "documentsPublished"
    DOCUMENTS_ACKNOWLEDGED = "documentsAcknowledged"

    @property
    def attribute(self) -> str:
        """Aggregate attribute backing this gate."""
        return GATE_ATTRIBUTES[self]


GATE_ATTRIBUTES: Dict[Gate, str] = {
    Gate.PAYMENT_APPROVED: "payment_approved",
    Gate.DETAILS_APPROVED: "details_approved",
    Gate.DOCUMENTS_APPROVED: "documents_approved",
    Gate.DOCUMENTS_PUBLISHED: "documents_published",
    Gate.DOCUMENTS_ACKNOWLEDGED: "documents_acknowledged",
}

# Gates an admin may flip through the approvals endpoint
ADMIN_GATES: FrozenSet[Gate] = frozenset({
    Gate.PAYMENT_APPROVED,
    Gate.DETAILS_APPROVED,
    Gate.DOCUMENTS_APPROVED,
})


# Canonical step -> allowed statuses mapping
STEP_STATUSES: Dict[RegistrationStep, Tuple[RegistrationStatus, ...]] = {
    RegistrationStep.CONTACT_DETAILS: (
        RegistrationStatus.PAYMENT_PROCESSING,
        RegistrationStatus.PAYMENT_REJECTED,
    ),
    RegistrationStep.COMPANY_DETAILS: (
        RegistrationStatus.DOCUMENTATION_PROCESSING,
    ),
    RegistrationStep.DOCUMENTATION: (
        RegistrationStatus.DOCUMENTATION_PROCESSING,
        RegistrationStatus.DOCUMENTS_PUBLISHED,
        RegistrationStatus.DOCUMENTS_SUBMITTED,
    ),
    RegistrationStep.INCORPORATE: (
        RegistrationStatus.INCORPORATION_PROCESSING,
        RegistrationStatus.COMPLETED,
    ),
}

# Progress position of each step (1-based), used by dashboards
STEP_NUMBERS: Dict[RegistrationStep, int] = {
    RegistrationStep.CONTACT_DETAILS: 1,
    RegistrationStep.COMPANY_DETAILS: 2,
    RegistrationStep.DOCUMENTATION: 3,
    RegistrationStep.INCORPORATE: 4,
}

INITIAL_STATE: Tuple[RegistrationStep, RegistrationStatus] = (
    RegistrationStep.CONTACT_DETAILS,
    RegistrationStatus.PAYMENT_PROCESSING,
)


@dataclass(frozen=True)
class AdvanceRule:
    """One row of the advance table.

    Attributes:
        step: Step the rule applies to
        to_step: Step after advancing
        to_status: Status after advancing
        gates: Boolean gates that must all be true
        required_slots: Single slots that must hold a document
        from_statuses: Statuses the rule applies to (None = any status of the step)
    """
    step: RegistrationStep
    to_step: RegistrationStep
    to_status: RegistrationStatus
    gates: Tuple[Gate, ...] = ()
    required_slots: Tuple[str, ...] = ()
    from_statuses: Optional[Tuple[RegistrationStatus, ...]] = None


ADVANCE_RULES: Tuple[AdvanceRule, ...] = (
    AdvanceRule(
        step=RegistrationStep.CONTACT_DETAILS,
        to_step=RegistrationStep.COMPANY_DETAILS,
        to_status=RegistrationStatus.DOCUMENTATION_PROCESSING,
        gates=(Gate.PAYMENT_APPROVED,),
    ),
    AdvanceRule(
        step=RegistrationStep.COMPANY_DETAILS,
        to_step=RegistrationStep.DOCUMENTATION,
        to_status=RegistrationStatus.DOCUMENTATION_PROCESSING,
        gates=(Gate.DETAILS_APPROVED,),
    ),
    AdvanceRule(
        step=RegistrationStep.DOCUMENTATION,
        to_step=RegistrationStep.INCORPORATE,
        to_status=RegistrationStatus.INCORPORATION_PROCESSING,
        gates=(Gate.DOCUMENTS_APPROVED, Gate.DOCUMENTS_ACKNOWLEDGED),
    ),
    AdvanceRule(
        step=RegistrationStep.INCORPORATE,
        to_step=RegistrationStep.INCORPORATE,
        to_status=RegistrationStatus.COMPLETED,
        required_slots=("incorporationCertificate",),
        from_statuses=(RegistrationStatus.INCORPORATION_PROCESSING,),
    ),
)


def is_consistent(step: RegistrationStep, status: RegistrationStatus) -> bool:
    """Check a (step, status) pair against the canonical mapping.

    Example:
        >>> is_consistent(RegistrationStep.DOCUMENTATION, RegistrationStatus.DOCUMENTS_PUBLISHED)
        True
        >>> is_consistent(RegistrationStep.CONTACT_DETAILS, RegistrationStatus.COMPLETED)
        False
    """
    return status in STEP_STATUSES.get(step, ())


def find_advance_rule(
    step: RegistrationStep,
    status: RegistrationStatus
) -> Optional[AdvanceRule]:
    """Return the advance rule for a (step, status) pair, or None if terminal."""
    for rule in ADVANCE_RULES:
        if rule.step != step:
            continue
        if rule.from_statuses is not None and status not in rule.from_statuses:
            continue
        return rule
    return None


def step_number(step: RegistrationStep) -> int:
    return STEP_NUMBERS[step]
