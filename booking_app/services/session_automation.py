"""
Automated status transitions for sessions
Handles created → cancelled_due_to_timeout for unpaid sessions past their payment deadline
Handles paid → completed once the session's period has ended
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.sessions.repository import SessionRepository
from ..models import ConsultationSession, Period, PeriodStatus, SessionStatus
from ..shared.validators import utcnow

logger = logging.getLogger(__name__)


def sweep_expired_sessions(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Cancel every unpaid session whose payment deadline has passed and free its period.
    Should be run as a scheduled job (every SESSION_CLEANUP_CRON_JOB_INTERVAL_IN_MINS)

    The whole pass is one transaction; a failure rolls all of it back and is re-raised.
    Running it twice has the same effect as running it once.

    Returns:
        dict: Summary of status changes made
    """
    now = now or utcnow()
    summary = {"expired_sessions": 0, "released_periods": 0}

    try:
        # Lock the expired rows so a payment confirmation cannot land between select and update
        expired = (
            db.query(ConsultationSession.id, ConsultationSession.period_id)
            .filter(
                ConsultationSession.status == SessionStatus.CREATED,
                ConsultationSession.expires_at < now,
            )
            .with_for_update(skip_locked=True)
            .all()
        )

        if not expired:
            db.commit()
            return summary

        session_ids = [row.id for row in expired]
        period_ids = [row.period_id for row in expired]

        summary["expired_sessions"] = (
            db.query(ConsultationSession)
            .filter(
                ConsultationSession.id.in_(session_ids),
                ConsultationSession.status == SessionStatus.CREATED,
            )
            .update(
                {"status": SessionStatus.CANCELLED_DUE_TO_TIMEOUT, "cancelled_at": now},
                synchronize_session=False,
            )
        )

        summary["released_periods"] = (
            db.query(Period)
            .filter(Period.id.in_(period_ids), Period.status == PeriodStatus.OCCUPIED)
            .update({"status": PeriodStatus.AVAILABLE}, synchronize_session=False)
        )

        db.commit()
        logger.info(
            f"⏰ Expired {summary['expired_sessions']} unpaid sessions, "
            f"released {summary['released_periods']} periods"
        )
        return summary

    except Exception as e:
        logger.error(f"❌ Error sweeping expired sessions: {str(e)}")
        db.rollback()
        raise


def complete_finished_sessions(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Move paid sessions whose period has ended to completed.

    Returns:
        dict: Summary of status changes made
    """
    now = now or utcnow()
    summary = {"completed_sessions": 0}

    try:
        finished_ids = [
            row.id
            for row in db.query(ConsultationSession.id)
            .join(Period, ConsultationSession.period_id == Period.id)
            .filter(
                ConsultationSession.status == SessionStatus.PAID,
                Period.end_time <= now,
            )
            .all()
        ]

        if finished_ids:
            summary["completed_sessions"] = (
                db.query(ConsultationSession)
                .filter(
                    ConsultationSession.id.in_(finished_ids),
                    ConsultationSession.status == SessionStatus.PAID,
                )
                .update(
                    {"status": SessionStatus.COMPLETED, "completed_at": now},
                    synchronize_session=False,
                )
            )

        db.commit()
        if summary["completed_sessions"]:
            logger.info(f"✅ Completed {summary['completed_sessions']} finished sessions")
        return summary

    except Exception as e:
        logger.error(f"❌ Error completing finished sessions: {str(e)}")
        db.rollback()
        raise


def mark_session_paid(db: Session, session_id: int, now: Optional[datetime] = None) -> bool:
    """
    Record a payment confirmation: created → paid.
    Sessions in any other state are left untouched.
    """
    now = now or utcnow()
    try:
        moved = SessionRepository.transition_status(
            db,
            session_id,
            from_statuses=(SessionStatus.CREATED,),
            to_status=SessionStatus.PAID,
            paid_at=now,
        )
        db.commit()
    except Exception as e:
        logger.error(f"❌ Error marking session {session_id} paid: {str(e)}")
        db.rollback()
        raise

    if moved:
        logger.info(f"💳 Session {session_id} transitioned: created → paid")
    else:
        logger.warning(f"⚠️ Payment confirmation ignored for session {session_id}: not awaiting payment")
    return moved
