"""Profiles domain - Doctor and patient lookups plus the provider-validity rule"""

from .repository import ProfileRepository, validate_doctor
from .service import ProfileService

__all__ = ["ProfileRepository", "ProfileService", "validate_doctor"]
