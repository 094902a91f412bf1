"""Session repository - Database operations for sessions and their periods"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import (
    ConsultationSession,
    Period,
    PeriodStatus,
    RefundEvent,
    RefundEventStatus,
)


class SessionRepository:
    """Repository for session database operations"""

    @staticmethod
    def occupy_period(db: Session, period_id: int) -> bool:
        """
        Flip a period from available to occupied inside the current transaction.
        Returns False when another booking already holds it.
        """
        updated = (
            db.query(Period)
            .filter(
                Period.id == period_id,
                Period.status == PeriodStatus.AVAILABLE,
                Period.is_deleted.is_(False),
            )
            .update({"status": PeriodStatus.OCCUPIED}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def release_period(db: Session, period_id: int) -> None:
        """Make a period available again inside the current transaction"""
        db.query(Period).filter(Period.id == period_id).update(
            {"status": PeriodStatus.AVAILABLE}, synchronize_session=False
        )

    @staticmethod
    def transition_status(
        db: Session,
        session_id: int,
        from_statuses: tuple[str, ...],
        to_status: str,
        **fields,
    ) -> bool:
        """
        Move a session to a new status only if it is still in one of the expected ones.
        Returns False when a concurrent writer changed it first.
        """
        updated = (
            db.query(ConsultationSession)
            .filter(
                ConsultationSession.id == session_id,
                ConsultationSession.status.in_(from_statuses),
            )
            .update({"status": to_status, **fields}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def get_patient_session(
        db: Session, session_id: int, patient_id: int
    ) -> Optional[ConsultationSession]:
        """Get a session owned by a patient, with its period"""
        return (
            db.query(ConsultationSession)
            .options(joinedload(ConsultationSession.period))
            .filter(
                ConsultationSession.id == session_id,
                ConsultationSession.patient_id == patient_id,
            )
            .first()
        )

    @staticmethod
    def get_doctor_session(
        db: Session, session_id: int, doctor_id: int
    ) -> Optional[ConsultationSession]:
        """Get a session of a doctor, with its period and patient"""
        return (
            db.query(ConsultationSession)
            .options(
                joinedload(ConsultationSession.period),
                joinedload(ConsultationSession.patient),
            )
            .filter(
                ConsultationSession.id == session_id,
                ConsultationSession.doctor_id == doctor_id,
            )
            .first()
        )

    @staticmethod
    def get_session_by_id(db: Session, session_id: int) -> Optional[ConsultationSession]:
        return db.query(ConsultationSession).filter(ConsultationSession.id == session_id).first()

    @staticmethod
    def get_sessions_paginated(
        db: Session,
        page: int,
        items_per_page: int,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
    ) -> tuple[list[ConsultationSession], int]:
        """
        Page through a patient's or doctor's sessions joined with their periods,
        earliest period first. Returns (items, total_items).
        """
        query = db.query(ConsultationSession).join(
            Period, ConsultationSession.period_id == Period.id
        )
        if patient_id is not None:
            query = query.filter(ConsultationSession.patient_id == patient_id)
        if doctor_id is not None:
            query = query.filter(ConsultationSession.doctor_id == doctor_id)

        total_items = query.with_entities(func.count(ConsultationSession.id)).scalar() or 0

        items = (
            query.options(
                joinedload(ConsultationSession.period),
                joinedload(ConsultationSession.patient),
            )
            .order_by(Period.start_time.asc(), ConsultationSession.id.asc())
            .offset((page - 1) * items_per_page)
            .limit(items_per_page)
            .all()
        )
        return items, total_items

    @staticmethod
    def add_refund_event(
        db: Session, session: ConsultationSession, refund_direction: str
    ) -> RefundEvent:
        """Stage a refund outbox row inside the current transaction"""
        refund_event = RefundEvent(
            session_id=session.id,
            patient_id=session.patient_id,
            doctor_id=session.doctor_id,
            refund_direction=refund_direction,
        )
        db.add(refund_event)
        return refund_event

    @staticmethod
    def get_pending_refund_events(db: Session, limit: int = 100) -> list[RefundEvent]:
        return (
            db.query(RefundEvent)
            .filter(RefundEvent.status == RefundEventStatus.PENDING)
            .order_by(RefundEvent.created_at.asc(), RefundEvent.id.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def mark_refund_event_published(db: Session, refund_event: RefundEvent, now: datetime) -> None:
        refund_event.status = RefundEventStatus.PUBLISHED
        refund_event.published_at = now
        refund_event.attempts = (refund_event.attempts or 0) + 1
        refund_event.last_error = None
        db.commit()

    @staticmethod
    def mark_refund_event_failed(db: Session, refund_event: RefundEvent, error: str) -> None:
        refund_event.attempts = (refund_event.attempts or 0) + 1
        refund_event.last_error = error[:1000]
        db.commit()
