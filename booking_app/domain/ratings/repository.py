"""Rating repository - Database operations for ratings"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Rating


class RatingRepository:
    """Repository for rating database operations"""

    @staticmethod
    def get_active_rating(db: Session, session_id: int, patient_id: int) -> Optional[Rating]:
        """Get the live rating a patient left on a session"""
        return (
            db.query(Rating)
            .filter(
                Rating.session_id == session_id,
                Rating.patient_id == patient_id,
                Rating.is_deleted.is_(False),
            )
            .first()
        )

    @staticmethod
    def get_patient_rating(db: Session, rating_id: int, patient_id: int) -> Optional[Rating]:
        """Get a non-deleted rating owned by a patient"""
        return (
            db.query(Rating)
            .filter(
                Rating.id == rating_id,
                Rating.patient_id == patient_id,
                Rating.is_deleted.is_(False),
            )
            .first()
        )

    @staticmethod
    def get_rating_values(db: Session, doctor_id: int) -> list[int]:
        """Scores of every non-deleted rating of a doctor, pending changes included"""
        rows = (
            db.query(Rating.rating)
            .filter(Rating.doctor_id == doctor_id, Rating.is_deleted.is_(False))
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def get_doctor_ratings_paginated(
        db: Session,
        doctor_id: int,
        page: int,
        items_per_page: int,
        rating: Optional[int] = None,
    ) -> tuple[list[Rating], int]:
        """Page through a doctor's ratings, newest first. Returns (items, total_items)."""
        query = db.query(Rating).filter(
            Rating.doctor_id == doctor_id, Rating.is_deleted.is_(False)
        )
        if rating is not None:
            query = query.filter(Rating.rating == rating)

        total_items = query.count()
        items = (
            query.order_by(Rating.created_at.desc(), Rating.id.desc())
            .offset((page - 1) * items_per_page)
            .limit(items_per_page)
            .all()
        )
        return items, total_items
