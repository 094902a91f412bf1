"""Period service - Availability rules for doctor periods"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...models import Period, PeriodStatus
from ...shared.errors import StatusCode, bad_request, conflict, not_found
from ...shared.validators import utcnow
from ..profiles import ProfileRepository, ProfileService, validate_doctor
from . import intervals
from .repository import PeriodRepository
from .schemas import PeriodCreate

logger = logging.getLogger(__name__)


class PeriodService:
    """Service layer for period business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PeriodRepository()
        self.profiles = ProfileService(db)

    def create_period(self, data: PeriodCreate, user: CurrentUser) -> Period:
        """Create a period for the calling doctor after validating the interval"""
        doctor = self.profiles.get_doctor(user.id)
        logger.info(f"📥 Creating period for doctor_id: {doctor.id} ({data.startTime} - {data.endTime})")

        try:
            # Serialize period creation per doctor so the overlap check stays valid until commit
            ProfileRepository.get_doctor_by_id(self.db, doctor.id, for_update=True)

            if not intervals.is_valid_gap(data.startTime, data.endTime):
                raise conflict(StatusCode.INVALID_TIME_GAP, "Invalid time gap")

            if not intervals.is_aligned(data.startTime) or not intervals.is_aligned(data.endTime):
                raise conflict(StatusCode.UNALIGNED_TIME, "Time is not on a 30-minute boundary")

            if not intervals.is_same_calendar_day(data.startTime, data.endTime, doctor.timezone):
                raise conflict(
                    StatusCode.NOT_SAME_DAY, "Start and end must fall on the same day"
                )

            if intervals.overlaps(self.db, doctor.id, data.startTime, data.endTime):
                raise conflict(StatusCode.OVERLAP_EXISTS, "Overlap exists")
        except Exception:
            self.db.rollback()
            raise

        period = self.repo.create_period(
            self.db,
            doctor.id,
            created_by=user.id,
            start_time=data.startTime,
            end_time=data.endTime,
        )
        logger.info(f"✅ Period {period.id} created for doctor {doctor.id}")
        return period

    def get_available_periods(self, doctor_id: int, start: datetime, end: datetime) -> list[Period]:
        """Get the bookable periods of a doctor within a time window"""
        self._check_window(start, end)
        doctor = validate_doctor(ProfileRepository.get_doctor_by_id(self.db, doctor_id))
        return self.repo.get_periods(self.db, doctor.id, start, end)

    def get_my_periods(self, user: CurrentUser, start: datetime, end: datetime) -> list[Period]:
        """Get the calling doctor's full calendar (available and occupied) within a window"""
        self._check_window(start, end)
        doctor = self.profiles.get_doctor(user.id)
        return self.repo.get_periods(
            self.db,
            doctor.id,
            start,
            end,
            statuses=(PeriodStatus.AVAILABLE, PeriodStatus.OCCUPIED),
        )

    def delete_available_period(self, period_id: int, user: CurrentUser) -> dict:
        """Soft delete one of the calling doctor's periods while nobody has booked it"""
        doctor = self.profiles.get_doctor(user.id)

        period = self.repo.get_doctor_period(self.db, period_id, doctor.id)
        if not period:
            raise not_found(StatusCode.PERIOD_NOT_FOUND, "Period not found")

        deleted = self.repo.soft_delete_available_period(
            self.db, period.id, doctor.id, deleted_by=user.id, now=utcnow()
        )
        if not deleted:
            logger.warning(f"⚠️ Period {period_id} was booked or deleted concurrently")
            raise not_found(StatusCode.PERIOD_NOT_FOUND, "Period not found")

        logger.info(f"🗑️ Period {period_id} soft-deleted by doctor {doctor.id}")
        return {"message": "Period deleted"}

    @staticmethod
    def _check_window(start: datetime, end: datetime) -> None:
        if end < start:
            raise bad_request(StatusCode.INVALID_TIME_RANGE, "End time must not be before start time")
