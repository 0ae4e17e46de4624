"""Registrations domain module - aggregate, step state machine, document slots"""

from .models import CustomerDocuments, PartyRecord, Registration, generate_registration_id
from .status import (
    ADMIN_GATES,
    ADVANCE_RULES,
    INITIAL_STATE,
    STEP_STATUSES,
    Gate,
    RegistrationStatus,
    RegistrationStep,
    is_consistent,
)
from .slots import SLOTS, SlotKind, SlotSpec, get_slot_spec

__all__ = [
    "CustomerDocuments",
    "PartyRecord",
    "Registration",
    "generate_registration_id",
    "ADMIN_GATES",
    "ADVANCE_RULES",
    "INITIAL_STATE",
    "STEP_STATUSES",
    "Gate",
    "RegistrationStatus",
    "RegistrationStep",
    "is_consistent",
    "SLOTS",
    "SlotKind",
    "SlotSpec",
    "get_slot_spec",
]
