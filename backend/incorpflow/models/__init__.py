"""SQLAlchemy Models for IncorpFlow"""

from .base import Base, PortableJSONB, UTCDateTime
from .registration import RegistrationRow

__all__ = [
    "Base",
    "PortableJSONB",
    "UTCDateTime",
    "RegistrationRow",
]
