"""Pytest fixtures for the registration service.

Provides reusable test fixtures for:
- In-memory SQLite database with the registrations table
- Local upload directory under pytest's tmp_path
- Repository and service wired to both
- TestClient with get_db / get_storage overridden
- Attachment and registration factories

Usage:
    def test_create(client):
        response = client.post("/api/registrations", json=registration_payload())
        assert response.status_code == 201
"""

import os
from datetime import datetime, timezone
from secrets import token_hex
from typing import Generator

# Settings are read at import time; point them at test resources first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from incorpflow.database import build_engine, get_db
from incorpflow.dependencies import get_storage
from incorpflow.domain.documents.attachment import DocumentAttachment
from incorpflow.infrastructure.repositories.registration_repository import RegistrationRepository
from incorpflow.infrastructure.storage.local_storage_adapter import LocalFileStorageAdapter
from incorpflow.main import app
from incorpflow.models import Base
from incorpflow.registrations.service import RegistrationService


def make_attachment(name: str = "form.pdf", **overrides) -> DocumentAttachment:
    """Build attachment metadata for a blob that may or may not exist."""
    file_id = overrides.pop("id", token_hex(16))
    fields = {
        "id": file_id,
        "name": name,
        "mime_type": "application/pdf",
        "size_bytes": 1024,
        "url": f"/uploads/documents/{file_id}.pdf",
        "storage_path": f"documents/{file_id}.pdf",
        "uploaded_at": datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return DocumentAttachment(**fields)


def attachment_json(name: str = "form.pdf", **overrides) -> dict:
    """Attachment metadata as a client sends it (camelCase JSON)."""
    return make_attachment(name, **overrides).to_json()


def registration_payload(**overrides) -> dict:
    """Minimal valid POST /registrations body."""
    payload = {
        "companyName": "Acme Holdings",
        "contactPersonName": "Jordan Silva",
        "contactPersonEmail": f"jordan.{token_hex(3)}@example.com",
        "contactPersonPhone": "+94 77 123 4567",
        "selectedPackage": "standard",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def storage(upload_dir) -> LocalFileStorageAdapter:
    return LocalFileStorageAdapter(base_dir=upload_dir)


@pytest.fixture
def repository(db) -> RegistrationRepository:
    return RegistrationRepository(db)


@pytest.fixture
def service(repository, storage) -> RegistrationService:
    return RegistrationService(
        repository=repository,
        storage=storage,
        max_retries=3,
        blob_timeout=5.0,
    )


@pytest.fixture
def client(session_factory, storage) -> Generator[TestClient, None, None]:
    """API client bound to the test database and upload directory."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def stored_files(upload_dir) -> list:
    """Relative paths of every blob currently in the upload directory."""
    return sorted(
        str(path.relative_to(upload_dir))
        for path in upload_dir.rglob("*")
        if path.is_file()
    )
