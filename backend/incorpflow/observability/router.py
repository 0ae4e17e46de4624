"""Observability API endpoints.

Provides Prometheus metrics and the health check for monitoring.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_db
from ..dependencies import get_storage
from ..domain.documents.ports.object_storage_port import ObjectStoragePort
from .health import (
    HealthStatus,
    check_blob_store_health,
    check_database_health,
    get_overall_health,
)

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    include_in_schema=False,  # Hide from OpenAPI docs
)
def metrics():
    """Expose Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Returns health status of the database and the blob store",
)
async def health_check(
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStoragePort, Depends(get_storage)],
):
    """Returns 200 if every component is healthy, 503 if any is unhealthy."""
    components = {
        "database": check_database_health(db),
        "blob_store": await check_blob_store_health(storage, get_settings().BLOB_TIMEOUT_SECONDS),
    }

    overall_status = get_overall_health(components)

    response_data = {
        "status": overall_status.value,
        "components": {
            name: {
                "status": comp.status.value,
                "message": comp.message,
                "latency_ms": comp.latency_ms,
            }
            for name, comp in components.items()
        }
    }

    status_code = 200 if overall_status != HealthStatus.UNHEALTHY else 503
    return JSONResponse(content=response_data, status_code=status_code)
