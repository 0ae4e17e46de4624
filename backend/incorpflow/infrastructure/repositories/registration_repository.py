"""Registration repository for database operations"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...domain.documents.attachment import DocumentAttachment
from ...domain.errors import (
    ConcurrentModification,
    DuplicateIdentity,
    NotFound,
    StoreError,
)
from ...domain.registrations.models import Registration
from ...domain.registrations.status import RegistrationStatus, RegistrationStep
from ...domain.registrations.workflow import ensure_consistent
from ...models.registration import RegistrationRow

logger = logging.getLogger(__name__)

# CustomerDocuments attribute -> registrations column
CUSTOMER_COLUMNS: Dict[str, str] = {
    "form1": "customer_form1",
    "letter_of_engagement": "customer_letter_of_engagement",
    "aoa": "customer_aoa",
    "form18": "customer_form18",
    "address_proof": "customer_address_proof",
}

COLUMNS = frozenset(RegistrationRow.__table__.columns.keys())
_AGGREGATE_COLUMNS = sorted(COLUMNS - set(CUSTOMER_COLUMNS.values()) - {"version"})


def _dump(value: Any) -> Any:
    """Convert aggregate values to column values (JSON-ready for slot columns)."""
    if value is None:
        return None
    if isinstance(value, DocumentAttachment):
        return value.to_json()
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json", exclude_none=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {key: _dump(item) for key, item in value.items()}
    return value


def to_columns(registration: Registration) -> Dict[str, Any]:
    """Flatten a registration into ``registrations`` column values."""
    columns = {name: _dump(getattr(registration, name)) for name in _AGGREGATE_COLUMNS}
    bundle = registration.customer_documents
    for attribute, column in CUSTOMER_COLUMNS.items():
        columns[column] = _dump(getattr(bundle, attribute)) if bundle is not None else None
    return columns


def to_domain(row: RegistrationRow) -> Registration:
    """Rebuild the aggregate from a row, reassembling the customer bundle.

    Raises:
        StoreError: If the row holds data the aggregate cannot represent
    """
    data = {name: getattr(row, name) for name in _AGGREGATE_COLUMNS}
    bundle = {attribute: getattr(row, column) for attribute, column in CUSTOMER_COLUMNS.items()}
    data["customer_documents"] = bundle if any(v is not None for v in bundle.values()) else None
    data["version"] = row.version or 0
    try:
        return Registration.model_validate(data)
    except ValidationError as e:
        raise StoreError(f"Registration {row.id} has unreadable data: {e.errors()[0]['msg']}")


def changed_columns(before: Registration, after: Registration) -> Dict[str, Any]:
    """Columns whose values differ between two versions of an aggregate."""
    old = to_columns(before)
    new = to_columns(after)
    return {name: value for name, value in new.items() if old.get(name) != value}


class RegistrationRepository:
    """Repository for the ``registrations`` table.

    Every write is its own transaction: the method commits on success and
    rolls back on failure. Updates are column-level and guarded by the row
    version, so two writers touching different slots never lose each other's
    changes, and a writer holding a stale version gets ConcurrentModification
    instead of overwriting.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get_by_id(self, registration_id: str) -> Registration:
        """Load one registration.

        Raises:
            NotFound: If no row has this id
            StoreError: On database failure
        """
        row = self._load(registration_id)
        if row is None:
            raise NotFound(f"Registration {registration_id} not found")
        return to_domain(row)

    def list(self) -> List[Registration]:
        """All registrations, newest first."""
        query = select(RegistrationRow).order_by(
            RegistrationRow.created_at.desc(),
            RegistrationRow.id.desc(),
        )
        try:
            rows = self.db.execute(query).scalars().all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to list registrations: {e}") from e
        return [to_domain(row) for row in rows]

    def insert(self, registration: Registration) -> str:
        """Persist a new registration and return its id.

        Raises:
            DuplicateIdentity: If the id or contact email is already taken
            InvalidState: If step and status do not belong together
            StoreError: On database failure
        """
        ensure_consistent(registration.current_step, registration.status)

        try:
            if self.db.get(RegistrationRow, registration.id) is not None:
                raise DuplicateIdentity(f"Registration {registration.id} already exists")

            email = registration.contact_person_email
            if email:
                taken = self.db.execute(
                    select(RegistrationRow.id).where(
                        func.lower(RegistrationRow.contact_person_email) == email.lower()
                    )
                ).first()
                if taken is not None:
                    raise DuplicateIdentity(f"A registration for {email} already exists")

            row = RegistrationRow(**to_columns(registration))
            self.db.add(row)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateIdentity(f"Registration {registration.id} already exists") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to insert registration {registration.id}: {e}") from e

        logger.info(f"Inserted registration {registration.id}")
        return registration.id

    def update_fields(
        self,
        registration_id: str,
        fields: Dict[str, Any],
        expected_version: int,
    ) -> Registration:
        """Write only the given columns if the row is still at ``expected_version``.

        Args:
            registration_id: Row to update
            fields: Column name -> column value (see ``to_columns``)
            expected_version: Version the caller read

        Returns:
            The updated registration (with its new version)

        Raises:
            NotFound: If the row is gone
            ConcurrentModification: If another writer got there first
            InvalidState: If the resulting step/status pair is not canonical
            StoreError: On database failure
        """
        unknown = set(fields) - COLUMNS
        if unknown or "version" in fields or "id" in fields:
            raise ValueError(f"Cannot update columns: {sorted(unknown | ({'version', 'id'} & set(fields)))}")

        try:
            row = self._load(registration_id)
            if row is None:
                raise NotFound(f"Registration {registration_id} not found")
            if row.version != expected_version:
                raise ConcurrentModification(
                    f"Registration {registration_id} changed (version {row.version}, "
                    f"expected {expected_version})"
                )

            if "current_step" in fields or "status" in fields:
                ensure_consistent(
                    RegistrationStep(fields.get("current_step", row.current_step)),
                    RegistrationStatus(fields.get("status", row.status)),
                )

            for name, value in fields.items():
                setattr(row, name, value)
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise ConcurrentModification(
                f"Registration {registration_id} was modified concurrently"
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to update registration {registration_id}: {e}") from e
        except Exception:
            self.db.rollback()
            raise

        return to_domain(row)

    def save(self, before: Registration, after: Registration) -> Registration:
        """Persist the columns that differ between ``before`` and ``after``."""
        fields = changed_columns(before, after)
        if not fields:
            return before
        return self.update_fields(before.id, fields, before.version)

    def delete(self, registration_id: str) -> Registration:
        """Delete a registration row and return what was deleted.

        Raises:
            NotFound: If no row has this id
            StoreError: On database failure
        """
        try:
            row = self._load(registration_id)
            if row is None:
                raise NotFound(f"Registration {registration_id} not found")
            registration = to_domain(row)
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to delete registration {registration_id}: {e}") from e

        logger.info(f"Deleted registration {registration_id}")
        return registration

    def _load(self, registration_id: str) -> Optional[RegistrationRow]:
        try:
            return self.db.get(RegistrationRow, registration_id, populate_existing=True)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to load registration {registration_id}: {e}") from e
