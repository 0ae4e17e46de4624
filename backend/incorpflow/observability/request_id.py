"""Request ID management for request correlation.

Provides context-aware request ID generation and propagation across async
operations. Incoming ``X-Request-ID`` headers are reused when they look sane,
so a caller's id follows the request through the logs.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable for request_id (async-safe)
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def generate_request_id() -> str:
    """Generate a new unique request ID (UUID v4)."""
    return str(uuid.uuid4())


def resolve_request_id(header_value: Optional[str]) -> str:
    """Reuse a client-supplied request id, or mint a new one.

    Example:
        >>> resolve_request_id("abc-123")
        'abc-123'
        >>> len(resolve_request_id("bad id\\n"))
        36
    """
    if header_value and _ACCEPTED_ID.match(header_value):
        return header_value
    return generate_request_id()


def get_request_id() -> str:
    """Current request ID, or "no-request-id" outside a request."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
