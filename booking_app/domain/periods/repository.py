"""Period repository - Database operations for periods"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Period, PeriodStatus


class PeriodRepository:
    """Repository for period database operations"""

    @staticmethod
    def create_period(db: Session, doctor_id: int, created_by: str, **period_data) -> Period:
        """Create a new available period"""
        period = Period(
            doctor_id=doctor_id,
            created_by=created_by,
            status=PeriodStatus.AVAILABLE,
            **period_data,
        )
        db.add(period)
        db.commit()
        db.refresh(period)
        return period

    @staticmethod
    def get_period_by_id(db: Session, period_id: int, for_update: bool = False) -> Optional[Period]:
        """Get a non-deleted period by ID"""
        query = db.query(Period).filter(Period.id == period_id, Period.is_deleted.is_(False))
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_doctor_period(db: Session, period_id: int, doctor_id: int) -> Optional[Period]:
        """Get a doctor's own available, non-deleted period"""
        return (
            db.query(Period)
            .filter(
                Period.id == period_id,
                Period.doctor_id == doctor_id,
                Period.status == PeriodStatus.AVAILABLE,
                Period.is_deleted.is_(False),
            )
            .first()
        )

    @staticmethod
    def get_periods(
        db: Session,
        doctor_id: int,
        start: datetime,
        end: datetime,
        statuses: tuple[str, ...] = (PeriodStatus.AVAILABLE,),
    ) -> list[Period]:
        """Get a doctor's non-deleted periods lying within [start, end], earliest first"""
        return (
            db.query(Period)
            .filter(
                Period.doctor_id == doctor_id,
                Period.is_deleted.is_(False),
                Period.status.in_(statuses),
                Period.start_time >= start,
                Period.end_time <= end,
            )
            .order_by(Period.start_time.asc())
            .all()
        )

    @staticmethod
    def soft_delete_available_period(
        db: Session, period_id: int, doctor_id: int, deleted_by: str, now: datetime
    ) -> bool:
        """
        Soft delete a period only while it is still available.
        Returns False when a concurrent booking or delete got there first.
        """
        updated = (
            db.query(Period)
            .filter(
                Period.id == period_id,
                Period.doctor_id == doctor_id,
                Period.status == PeriodStatus.AVAILABLE,
                Period.is_deleted.is_(False),
            )
            .update(
                {"is_deleted": True, "deleted_at": now, "deleted_by": deleted_by},
                synchronize_session=False,
            )
        )
        if updated != 1:
            db.rollback()
            return False
        db.commit()
        return True
