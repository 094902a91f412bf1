"""Rating service - Ratings and the doctor's running average"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...models import Doctor, Rating, SessionStatus
from ...shared.errors import StatusCode, conflict, not_found
from ...shared.validators import utcnow
from ..profiles import ProfileRepository, ProfileService, validate_doctor
from ..sessions.repository import SessionRepository
from .repository import RatingRepository
from .schemas import RatingCreate, RatingUpdate

logger = logging.getLogger(__name__)

RATEABLE_STATUSES = (SessionStatus.PAID, SessionStatus.COMPLETED)


def average_rating(values: list[int]) -> float:
    """Mean of the scores rounded half-up to one decimal, 0 when there are none"""
    if not values:
        return 0.0
    mean = Decimal(sum(values)) / Decimal(len(values))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class RatingService:
    """Service layer for rating business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RatingRepository()
        self.sessions = SessionRepository()
        self.profiles = ProfileService(db)

    def _refresh_doctor_average(self, doctor_id: int) -> Doctor:
        """
        Recompute a doctor's average inside the current transaction.
        The doctor row lock serializes concurrent rating writes for the same doctor.
        """
        doctor = ProfileRepository.get_doctor_by_id(self.db, doctor_id, for_update=True)
        self.db.flush()
        doctor.average_rating = average_rating(self.repo.get_rating_values(self.db, doctor_id))
        return doctor

    def _commit_with_average(self, rating: Rating) -> Rating:
        try:
            doctor = self._refresh_doctor_average(rating.doctor_id)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate rating for session {rating.session_id}: {str(e)}")
            raise conflict(StatusCode.RATING_EXISTS_ALREADY, "Rating exists already") from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(rating)
        logger.info(f"⭐ Doctor {doctor.id} average rating is now {doctor.average_rating}")
        return rating

    def create_rating(self, session_id: int, data: RatingCreate, user: CurrentUser) -> Rating:
        """Rate one of the calling patient's sessions once its period has ended"""
        patient = self.profiles.get_patient(user.id)

        session = self.sessions.get_patient_session(self.db, session_id, patient.id)
        if not session:
            raise not_found(StatusCode.SESSION_NOT_FOUND, "Session not found")

        if session.status not in RATEABLE_STATUSES:
            raise conflict(StatusCode.SESSION_NOT_COMPLETED, "Session is not completed")

        if session.period.end_time > utcnow():
            raise conflict(StatusCode.PERIOD_NOT_PASSED, "Session has not ended yet")

        if self.repo.get_active_rating(self.db, session.id, patient.id):
            raise conflict(StatusCode.RATING_EXISTS_ALREADY, "Rating exists already")

        rating = Rating(
            session_id=session.id,
            patient_id=patient.id,
            doctor_id=session.doctor_id,
            rating=data.rating,
            message=data.message,
        )
        self.db.add(rating)
        self._commit_with_average(rating)
        logger.info(f"✅ Rating {rating.id} created for session {session.id}")
        return rating

    def update_rating(self, rating_id: int, data: RatingUpdate, user: CurrentUser) -> Rating:
        """Edit the score or message of one of the calling patient's ratings"""
        patient = self.profiles.get_patient(user.id)
        rating = self.repo.get_patient_rating(self.db, rating_id, patient.id)
        if not rating:
            raise not_found(StatusCode.RATING_NOT_FOUND, "Rating not found")

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field == "rating" and value is None:
                continue
            setattr(rating, field, value)

        return self._commit_with_average(rating)

    def delete_rating(self, rating_id: int, user: CurrentUser) -> dict:
        """Soft delete one of the calling patient's ratings"""
        patient = self.profiles.get_patient(user.id)
        rating = self.repo.get_patient_rating(self.db, rating_id, patient.id)
        if not rating:
            raise not_found(StatusCode.RATING_NOT_FOUND, "Rating not found")

        rating.is_deleted = True
        self._commit_with_average(rating)
        logger.info(f"🗑️ Rating {rating_id} deleted")
        return {"message": "Rating deleted"}

    def get_doctor_ratings_paginated(
        self,
        doctor_id: int,
        page: int,
        items_per_page: int,
        rating: Optional[int] = None,
    ) -> tuple[list[Rating], int, float]:
        """Get a doctor's ratings with the doctor's current average"""
        doctor = validate_doctor(ProfileRepository.get_doctor_by_id(self.db, doctor_id))
        items, total = self.repo.get_doctor_ratings_paginated(
            self.db, doctor.id, page, items_per_page, rating=rating
        )
        return items, total, doctor.average_rating
