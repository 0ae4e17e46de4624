"""Observability module for IncorpFlow.

Provides structured logging, metrics, request correlation and health checks.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    http_requests_total,
    registrations_created_total,
    registration_transitions_total,
    registration_conflicts_total,
    slot_mutations_total,
    blob_operations_total,
    blob_operation_duration_seconds,
    orphaned_blobs_total,
)
from .request_id import (
    request_id_var,
    get_request_id,
    set_request_id,
    generate_request_id,
    resolve_request_id,
)
from .health import HealthStatus, ComponentHealth
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "http_requests_total",
    "registrations_created_total",
    "registration_transitions_total",
    "registration_conflicts_total",
    "slot_mutations_total",
    "blob_operations_total",
    "blob_operation_duration_seconds",
    "orphaned_blobs_total",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "resolve_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    # Middleware
    "RequestIDMiddleware",
]
