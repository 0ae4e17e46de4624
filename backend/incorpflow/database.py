"""Database session factory and configuration.

Provides database connectivity and session management for the registrations
store. PostgreSQL gets a bounded pool and a per-statement timeout; SQLite
(tests, local demos) gets a single shared connection.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import get_settings


def build_engine(database_url: str, **overrides) -> Engine:
    """Create an engine with the pool and timeout settings for its dialect."""
    settings = get_settings()
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,  # Set to True for SQL query logging
    }

    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
        engine_kwargs["max_overflow"] = 10
        engine_kwargs["pool_timeout"] = settings.DB_POOL_TIMEOUT_SECONDS
        engine_kwargs["connect_args"] = {
            "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}",
            "connect_timeout": settings.DB_POOL_TIMEOUT_SECONDS,
        }

    engine_kwargs.update(overrides)
    return create_engine(database_url, **engine_kwargs)


engine = build_engine(get_settings().DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            repo = RegistrationRepository(session)
            repo.list()

    Automatically commits on success, rolls back on exception.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @router.get("/registrations")
        def list_registrations(db: Session = Depends(get_db)):
            return RegistrationRepository(db).list()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
