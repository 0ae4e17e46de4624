"""Health check utilities for IncorpFlow.

Checks the two stateful dependencies: the relational store and the blob store.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.documents.ports.object_storage_port import ObjectStoragePort, StorageError
from .logging_config import get_logger

logger = get_logger(__name__)

# Key probed on the blob store; it never has to exist
HEALTHCHECK_KEY = "temp/.healthcheck"


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def check_database_health(db: Session) -> ComponentHealth:
    """Run ``SELECT 1`` against the registrations database."""
    start = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Database error: {e}"
        )

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message="Database connection OK",
        latency_ms=round((time.perf_counter() - start) * 1000, 2)
    )


async def check_blob_store_health(storage: ObjectStoragePort, timeout: float) -> ComponentHealth:
    """Probe the blob store with an existence check."""
    start = time.perf_counter()
    try:
        await asyncio.wait_for(storage.file_exists(HEALTHCHECK_KEY), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Blob store health check timed out after {timeout}s")
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Blob store timed out after {timeout}s"
        )
    except (StorageError, OSError) as e:
        logger.error(f"Blob store health check failed: {e}", exc_info=True)
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Blob store error: {e}"
        )

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message="Blob store OK",
        latency_ms=round((time.perf_counter() - start) * 1000, 2)
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall health from component statuses."""
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
