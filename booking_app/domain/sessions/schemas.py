"""Session domain schemas - Pydantic models for responses"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..periods.schemas import PeriodResponse


class SessionPricing(BaseModel):
    totalPrice: int
    doctorPrice: int
    platformPrice: int
    paymentApiPrice: int


class SessionMeta(BaseModel):
    """Fee configuration in effect when the session was booked"""

    originalDoctorConsultationFeePerHour: float
    platformPercentage: float
    collectionPercentage: float
    disbursementPercentage: float


class PatientSummary(BaseModel):
    id: int
    fullName: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_model(cls, patient) -> "PatientSummary":
        return cls(id=patient.id, fullName=patient.full_name, email=patient.email)


class SessionResponse(BaseModel):
    """Schema for session response"""

    id: int
    periodId: int
    patientId: int
    doctorId: int
    status: str
    pricing: SessionPricing
    meta: SessionMeta
    expiresAt: datetime
    paidAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    period: Optional[PeriodResponse] = None
    patient: Optional[PatientSummary] = None

    @classmethod
    def from_model(cls, session, include_patient: bool = False) -> "SessionResponse":
        return cls(
            id=session.id,
            periodId=session.period_id,
            patientId=session.patient_id,
            doctorId=session.doctor_id,
            status=session.status,
            pricing=SessionPricing(
                totalPrice=session.total_price,
                doctorPrice=session.doctor_price,
                platformPrice=session.platform_price,
                paymentApiPrice=session.payment_api_price,
            ),
            meta=SessionMeta(
                originalDoctorConsultationFeePerHour=session.original_fee_per_hour,
                platformPercentage=session.platform_percentage,
                collectionPercentage=session.collection_percentage,
                disbursementPercentage=session.disbursement_percentage,
            ),
            expiresAt=session.expires_at,
            paidAt=session.paid_at,
            cancelledAt=session.cancelled_at,
            createdAt=session.created_at,
            period=PeriodResponse.from_model(session.period) if session.period else None,
            patient=(
                PatientSummary.from_model(session.patient)
                if include_patient and session.patient
                else None
            ),
        )


class PaginatedSessions(BaseModel):
    items: list[SessionResponse]
    totalItems: int
    page: int
    itemsPerPage: int


class RefundInitiationMessage(BaseModel):
    """Payload published to the payment service when a paid session is cancelled"""

    sessionId: int
    patientId: int
    doctorId: int
    refundDirection: str
