"""Database repositories"""

from .registration_repository import RegistrationRepository

__all__ = ["RegistrationRepository"]
