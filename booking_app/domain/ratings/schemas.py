"""Rating domain schemas - Pydantic models for requests and responses"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _clean_message(v: Optional[str]) -> Optional[str]:
    """Trim a rating message; blank becomes None"""
    if v is None:
        return v
    v = v.strip()
    return v or None


class RatingCreate(BaseModel):
    """Schema for rating a finished session"""

    rating: int = Field(ge=1, le=5)
    message: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: Optional[str]) -> Optional[str]:
        return _clean_message(v)


class RatingUpdate(BaseModel):
    """Schema for editing a rating (partial)"""

    rating: Optional[int] = Field(default=None, ge=1, le=5)
    message: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: Optional[str]) -> Optional[str]:
        return _clean_message(v)


class RatingResponse(BaseModel):
    id: int
    sessionId: int
    patientId: int
    doctorId: int
    rating: int
    message: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, rating) -> "RatingResponse":
        return cls(
            id=rating.id,
            sessionId=rating.session_id,
            patientId=rating.patient_id,
            doctorId=rating.doctor_id,
            rating=rating.rating,
            message=rating.message,
            createdAt=rating.created_at,
            updatedAt=rating.updated_at,
        )


class PaginatedRatings(BaseModel):
    items: list[RatingResponse]
    totalItems: int
    page: int
    itemsPerPage: int
    averageRating: float
