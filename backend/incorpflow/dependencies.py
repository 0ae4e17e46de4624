"""Global FastAPI dependencies.

This module provides:
- get_storage: the process-wide blob store adapter chosen by STORAGE_BACKEND
- get_registration_service: RegistrationService bound to the request's session

Tests override ``get_db`` and ``get_storage`` through
``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import get_settings
from .database import get_db
from .domain.documents.ports.object_storage_port import ObjectStoragePort
from .infrastructure.repositories.registration_repository import RegistrationRepository
from .infrastructure.storage.storage_config import create_storage, load_storage_config
from .registrations.service import RegistrationService


@lru_cache()
def get_storage() -> ObjectStoragePort:
    """Dependency for the blob store adapter (one instance per process)."""
    return create_storage(load_storage_config(get_settings()))


def get_registration_service(
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStoragePort, Depends(get_storage)],
) -> RegistrationService:
    settings = get_settings()
    return RegistrationService(
        repository=RegistrationRepository(db),
        storage=storage,
        max_retries=settings.REGISTRATION_UPDATE_RETRIES,
        blob_timeout=settings.BLOB_TIMEOUT_SECONDS,
        max_upload_size=settings.MAX_UPLOAD_SIZE_BYTES,
    )
