from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class PeriodStatus:
    AVAILABLE = "available"
    OCCUPIED = "occupied"


class SessionStatus:
    CREATED = "created"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED_BY_DOCTOR = "cancelled_by_doctor"
    CANCELLED_BY_PATIENT = "cancelled_by_patient"
    CANCELLED_DUE_TO_TIMEOUT = "cancelled_due_to_timeout"

    CANCELLED = (CANCELLED_BY_DOCTOR, CANCELLED_BY_PATIENT, CANCELLED_DUE_TO_TIMEOUT)
    TERMINAL = (COMPLETED, *CANCELLED)


class RefundDirection:
    DOCTOR = "doctor"
    PATIENT = "patient"


class RefundEventStatus:
    PENDING = "pending"
    PUBLISHED = "published"


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), unique=True, index=True, nullable=False)  # Identity service id
    name = Column(String(255), nullable=False)
    timezone = Column(String(64), default="UTC", nullable=False)  # IANA zone, e.g. Africa/Douala
    consultation_fee_per_hour = Column(Float, nullable=False, default=0)
    # Minimum notice before a period start for it to stay bookable
    dont_book_me_before_in_mins = Column(Integer, default=0, nullable=False)
    average_rating = Column(Float, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_visible = Column(Boolean, default=True, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    periods = relationship("Period", back_populates="doctor")
    ratings = relationship("Rating", back_populates="doctor")


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    sessions = relationship("ConsultationSession", back_populates="patient")


class Period(Base):
    """A bookable time slot owned by a doctor (times are naive UTC)"""

    __tablename__ = "periods"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), default=PeriodStatus.AVAILABLE, nullable=False)

    # Soft delete
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String(64), nullable=True)

    created_by = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    doctor = relationship("Doctor", back_populates="periods")
    sessions = relationship("ConsultationSession", back_populates="period")

    __table_args__ = (
        Index("ix_periods_doctor_overlap", "doctor_id", "is_deleted", "start_time", "end_time"),
    )


class ConsultationSession(Base):
    """A patient's reservation of a period"""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    period_id = Column(Integer, ForeignKey("periods.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)

    # Pricing breakdown computed at booking time
    total_price = Column(Integer, nullable=False)
    doctor_price = Column(Integer, nullable=False)
    platform_price = Column(Integer, nullable=False)
    payment_api_price = Column(Integer, nullable=False)

    # Fee snapshot so later config changes never reprice history
    original_fee_per_hour = Column(Float, nullable=False)
    platform_percentage = Column(Float, nullable=False)
    collection_percentage = Column(Float, nullable=False)
    disbursement_percentage = Column(Float, nullable=False)

    # created → paid → completed | cancelled_by_doctor | cancelled_by_patient | cancelled_due_to_timeout
    status = Column(String(40), default=SessionStatus.CREATED, nullable=False)
    expires_at = Column(DateTime, nullable=False)  # Payment deadline
    paid_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    period = relationship("Period", back_populates="sessions")
    patient = relationship("Patient", back_populates="sessions")
    doctor = relationship("Doctor")

    __table_args__ = (Index("ix_sessions_status_expires_at", "status", "expires_at"),)


class Rating(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)  # 1-5
    message = Column(Text, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, onupdate=func.now())

    doctor = relationship("Doctor", back_populates="ratings")
    session = relationship("ConsultationSession")

    __table_args__ = (
        # One live rating per (session, patient)
        Index(
            "uq_ratings_session_patient_active",
            "session_id",
            "patient_id",
            unique=True,
            sqlite_where=is_deleted.is_(False),
            postgresql_where=is_deleted.is_(False),
        ),
    )


class RefundEvent(Base):
    """Outbox row for the refund-initiation message, written with the cancellation"""

    __tablename__ = "refund_events"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), unique=True, nullable=False)
    patient_id = Column(Integer, nullable=False)
    doctor_id = Column(Integer, nullable=False)
    refund_direction = Column(String(20), nullable=False)
    status = Column(String(20), default=RefundEventStatus.PENDING, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    published_at = Column(DateTime, nullable=True)
