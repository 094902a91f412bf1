"""Period router - FastAPI endpoints for doctor availability"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentUser, UserRole, require_role
from ...database import get_db
from ...shared.validators import to_naive_utc
from .schemas import PeriodCreate, PeriodResponse
from .service import PeriodService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/periods", tags=["Periods"])


def get_period_service(db: Session = Depends(get_db)) -> PeriodService:
    """Dependency injection for PeriodService"""
    return PeriodService(db)


@router.post("", response_model=PeriodResponse, status_code=201)
async def create_period(
    data: PeriodCreate,
    current_user: CurrentUser = Depends(require_role(UserRole.DOCTOR)),
    service: PeriodService = Depends(get_period_service),
):
    """Create a bookable period for the current doctor"""
    period = service.create_period(data, current_user)
    return PeriodResponse.from_model(period)


@router.get("/doctor/me", response_model=list[PeriodResponse])
async def get_my_periods(
    startTime: datetime = Query(...),
    endTime: datetime = Query(...),
    current_user: CurrentUser = Depends(require_role(UserRole.DOCTOR)),
    service: PeriodService = Depends(get_period_service),
):
    """Get the current doctor's available and occupied periods in a window"""
    periods = service.get_my_periods(current_user, to_naive_utc(startTime), to_naive_utc(endTime))
    return [PeriodResponse.from_model(p) for p in periods]


@router.get("/doctor/{doctor_id}", response_model=list[PeriodResponse])
async def get_periods_by_doctor(
    doctor_id: int,
    startTime: datetime = Query(...),
    endTime: datetime = Query(...),
    service: PeriodService = Depends(get_period_service),
):
    """Get a doctor's bookable periods in a window (public)"""
    periods = service.get_available_periods(
        doctor_id, to_naive_utc(startTime), to_naive_utc(endTime)
    )
    return [PeriodResponse.from_model(p) for p in periods]


@router.delete("/doctor/me/{period_id}")
async def delete_my_available_period(
    period_id: int,
    current_user: CurrentUser = Depends(require_role(UserRole.DOCTOR)),
    service: PeriodService = Depends(get_period_service),
):
    """Soft delete one of the current doctor's unbooked periods"""
    return service.delete_available_period(period_id, current_user)
