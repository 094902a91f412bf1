"""Session service - Booking and cancellation of periods"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...config import get_booking_settings
from ...models import (
    ConsultationSession,
    Patient,
    PeriodStatus,
    RefundDirection,
    RefundEvent,
    SessionStatus,
)
from ...shared.errors import StatusCode, conflict, not_found
from ...shared.validators import utcnow
from ..periods.repository import PeriodRepository
from ..profiles import ProfileRepository, ProfileService, validate_doctor
from .pricing import calculate_session_price
from .repository import SessionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CancellationRule:
    """How one side of a session may cancel it"""

    cancellable_statuses: tuple[str, ...]
    target_status: str
    refund_direction: str
    window_setting: str  # BookingSettings field holding the minimum notice in minutes


CANCELLATION_RULES = {
    # An unpaid session is left to expire; the doctor only cancels paid ones
    RefundDirection.DOCTOR: CancellationRule(
        cancellable_statuses=(SessionStatus.PAID,),
        target_status=SessionStatus.CANCELLED_BY_DOCTOR,
        refund_direction=RefundDirection.DOCTOR,
        window_setting="doctor_cancel_before_minutes",
    ),
    RefundDirection.PATIENT: CancellationRule(
        cancellable_statuses=(SessionStatus.CREATED, SessionStatus.PAID),
        target_status=SessionStatus.CANCELLED_BY_PATIENT,
        refund_direction=RefundDirection.PATIENT,
        window_setting="patient_cancel_before_minutes",
    ),
}


@dataclass
class CancellationResult:
    session: ConsultationSession
    refund_event: Optional[RefundEvent] = None


class SessionService:
    """Service layer for session business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SessionRepository()
        self.periods = PeriodRepository()
        self.profiles = ProfileService(db)

    def book_session(self, period_id: int, user: CurrentUser) -> ConsultationSession:
        """Reserve a period for the calling patient"""
        patient = self.profiles.get_patient(user.id)
        settings = get_booking_settings()

        try:
            period = self.periods.get_period_by_id(self.db, period_id, for_update=True)
            if not period:
                raise not_found(StatusCode.PERIOD_NOT_FOUND, "Period not found")
            if period.status != PeriodStatus.AVAILABLE:
                raise conflict(StatusCode.PERIOD_OCCUPIED, "Period occupied")

            now = utcnow()
            if now > period.start_time:
                raise conflict(StatusCode.PERIOD_PASSED, "Period passed")

            doctor = validate_doctor(
                ProfileRepository.get_doctor_by_id(self.db, period.doctor_id)
            )

            lead_time = timedelta(minutes=doctor.dont_book_me_before_in_mins or 0)
            if now + lead_time > period.start_time:
                raise conflict(
                    StatusCode.PERIOD_TOO_CLOSE_TO_START,
                    "Cannot book this period because it's too close to the start time",
                )

            price = calculate_session_price(
                fee_per_hour=doctor.consultation_fee_per_hour,
                start_time=period.start_time,
                end_time=period.end_time,
                platform_percentage=settings.platform_percentage,
                collection_percentage=settings.collection_percentage,
                disbursement_percentage=settings.disbursement_percentage,
            )

            # Conditional flip: only one concurrent booking can see it available
            if not self.repo.occupy_period(self.db, period.id):
                logger.warning(f"⚠️ Period {period.id} was booked concurrently")
                raise conflict(StatusCode.PERIOD_OCCUPIED, "Period occupied")

            session = ConsultationSession(
                period_id=period.id,
                patient_id=patient.id,
                doctor_id=doctor.id,
                total_price=price.total_price,
                doctor_price=price.doctor_price,
                platform_price=price.platform_price,
                payment_api_price=price.payment_api_price,
                original_fee_per_hour=doctor.consultation_fee_per_hour,
                platform_percentage=settings.platform_percentage,
                collection_percentage=settings.collection_percentage,
                disbursement_percentage=settings.disbursement_percentage,
                status=SessionStatus.CREATED,
                expires_at=now + timedelta(minutes=settings.session_payment_expire_minutes),
            )
            self.db.add(session)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(session)
        logger.info(
            f"✅ Session {session.id} booked: period={period_id}, patient={patient.id}, "
            f"total={session.total_price}, expires_at={session.expires_at}"
        )
        return session

    def cancel_session(
        self, session_id: int, user: CurrentUser, direction: str
    ) -> CancellationResult:
        """
        Cancel a session on behalf of its doctor or its patient and free the period.
        A refund outbox row is staged in the same transaction when the session was paid.
        """
        rule = CANCELLATION_RULES[direction]
        settings = get_booking_settings()

        if direction == RefundDirection.DOCTOR:
            doctor = self.profiles.get_doctor(user.id)
            session = self.repo.get_doctor_session(self.db, session_id, doctor.id)
        else:
            patient = self.profiles.get_patient(user.id)
            session = self.repo.get_patient_session(self.db, session_id, patient.id)

        if not session:
            raise not_found(StatusCode.SESSION_NOT_FOUND, "Session not found")

        if session.status in SessionStatus.CANCELLED:
            raise conflict(StatusCode.SESSION_ALREADY_CANCELLED, "Session is already cancelled")
        if session.status == SessionStatus.COMPLETED:
            raise conflict(StatusCode.SESSION_ALREADY_COMPLETED, "Session is already completed")

        if session.status not in rule.cancellable_statuses:
            raise conflict(StatusCode.SESSION_NOT_PAID, "Only paid sessions can be cancelled")

        now = utcnow()
        period = session.period
        if period.start_time < now:
            raise conflict(StatusCode.PERIOD_PASSED, "Session has already started")

        window = timedelta(minutes=getattr(settings, rule.window_setting))
        if now + window > period.start_time:
            raise conflict(
                StatusCode.CANCELLATION_WINDOW_PASSED,
                "Session is too close to its start time to be cancelled",
            )

        was_paid = session.status == SessionStatus.PAID
        refund_event = None

        try:
            moved = self.repo.transition_status(
                self.db,
                session.id,
                from_statuses=(session.status,),
                to_status=rule.target_status,
                cancelled_at=now,
            )
            if not moved:
                logger.warning(f"⚠️ Session {session.id} changed status concurrently")
                raise conflict(
                    StatusCode.SESSION_ALREADY_CANCELLED, "Session is no longer cancellable"
                )

            self.repo.release_period(self.db, session.period_id)

            if was_paid:
                refund_event = self.repo.add_refund_event(
                    self.db, session, rule.refund_direction
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(session)
        if refund_event is not None:
            self.db.refresh(refund_event)

        logger.info(
            f"🚫 Session {session.id} cancelled by {direction} "
            f"(paid={was_paid}, period {session.period_id} released)"
        )
        return CancellationResult(session=session, refund_event=refund_event)

    def get_patient_session(self, session_id: int, user: CurrentUser) -> ConsultationSession:
        """Get one of the calling patient's sessions"""
        patient = self.profiles.get_patient(user.id)
        session = self.repo.get_patient_session(self.db, session_id, patient.id)
        if not session:
            raise not_found(StatusCode.SESSION_NOT_FOUND, "Session not found")
        return session

    def get_doctor_session(self, session_id: int, user: CurrentUser) -> ConsultationSession:
        """Get one of the calling doctor's sessions"""
        doctor = self.profiles.get_doctor(user.id)
        session = self.repo.get_doctor_session(self.db, session_id, doctor.id)
        if not session:
            raise not_found(StatusCode.SESSION_NOT_FOUND, "Session not found")
        return session

    def get_patient_from_session(self, session_id: int, user: CurrentUser) -> Patient:
        """Get the patient who booked one of the calling doctor's sessions"""
        return self.get_doctor_session(session_id, user).patient

    def get_patient_sessions_paginated(
        self, page: int, items_per_page: int, user: CurrentUser
    ) -> tuple[list[ConsultationSession], int]:
        patient = self.profiles.get_patient(user.id)
        return self.repo.get_sessions_paginated(
            self.db, page, items_per_page, patient_id=patient.id
        )

    def get_doctor_sessions_paginated(
        self, page: int, items_per_page: int, user: CurrentUser
    ) -> tuple[list[ConsultationSession], int]:
        doctor = self.profiles.get_doctor(user.id)
        return self.repo.get_sessions_paginated(
            self.db, page, items_per_page, doctor_id=doctor.id
        )
