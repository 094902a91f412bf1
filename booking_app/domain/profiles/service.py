"""Profile service - Resolves the caller's own doctor or patient profile"""

from sqlalchemy.orm import Session

from ...models import Doctor, Patient
from ...shared.errors import StatusCode, not_found
from .repository import ProfileRepository, validate_doctor


class ProfileService:
    """Service layer for caller profile resolution"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProfileRepository()

    def get_patient(self, user_id: str) -> Patient:
        """Get the caller's patient profile"""
        patient = self.repo.get_patient_by_user_id(self.db, user_id)
        if not patient:
            raise not_found(StatusCode.PATIENT_NOT_FOUND, "Patient not found")
        return patient

    def get_doctor(self, user_id: str) -> Doctor:
        """Get the caller's doctor profile, which must be valid"""
        return validate_doctor(self.repo.get_doctor_by_user_id(self.db, user_id))
