"""Profile repository - Doctor and patient lookups shared by the booking domains"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Doctor, Patient
from ...shared.errors import StatusCode, conflict, not_found

logger = logging.getLogger(__name__)


class ProfileRepository:
    """Repository for doctor and patient profiles"""

    @staticmethod
    def get_patient_by_user_id(db: Session, user_id: str) -> Optional[Patient]:
        """Get the non-deleted patient profile of an identity"""
        return (
            db.query(Patient)
            .filter(Patient.user_id == user_id, Patient.is_deleted.is_(False))
            .first()
        )

    @staticmethod
    def get_doctor_by_user_id(db: Session, user_id: str) -> Optional[Doctor]:
        """Get the doctor profile of an identity"""
        return db.query(Doctor).filter(Doctor.user_id == user_id).first()

    @staticmethod
    def get_doctor_by_id(db: Session, doctor_id: int, for_update: bool = False) -> Optional[Doctor]:
        """Get a doctor by ID, optionally taking a row lock for the current transaction"""
        query = db.query(Doctor).filter(Doctor.id == doctor_id)
        if for_update:
            query = query.with_for_update()
        return query.first()


def validate_doctor(doctor: Optional[Doctor]) -> Doctor:
    """
    Apply the provider-validity rule.

    Missing or deleted doctors are not found; inactive or hidden doctors
    exist but cannot take part in bookings.
    """
    if not doctor or doctor.is_deleted:
        raise not_found(StatusCode.DOCTOR_NOT_FOUND, "Doctor not found")
    if not doctor.is_active or not doctor.is_visible:
        logger.warning(f"⚠️ Doctor {doctor.id} is inactive or hidden")
        raise conflict(StatusCode.DOCTOR_INACTIVE, "Doctor is not active")
    return doctor
