"""Period domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import to_naive_utc


class PeriodCreate(BaseModel):
    """Schema for creating a new period"""

    startTime: datetime
    endTime: datetime

    @field_validator("startTime", "endTime")
    @classmethod
    def normalize_instant(cls, v):
        return to_naive_utc(v)


class PeriodResponse(BaseModel):
    """Schema for period response"""

    id: int
    doctorId: int
    startTime: datetime
    endTime: datetime
    status: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, period) -> "PeriodResponse":
        return cls(
            id=period.id,
            doctorId=period.doctor_id,
            startTime=period.start_time,
            endTime=period.end_time,
            status=period.status,
            createdAt=period.created_at,
        )
