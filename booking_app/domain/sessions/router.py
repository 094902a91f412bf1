"""Session router - FastAPI endpoints for booking and cancelling sessions"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentUser, UserRole, require_role
from ...database import get_db
from ...models import RefundDirection
from ...shared.validators import validate_page
from .events import RefundEventPublisher, get_refund_publisher
from .schemas import PaginatedSessions, PatientSummary, SessionResponse
from .service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    """Dependency injection for SessionService"""
    return SessionService(db)


async def _cancel(
    session_id: int,
    current_user: CurrentUser,
    direction: str,
    service: SessionService,
    publisher: RefundEventPublisher,
) -> SessionResponse:
    result = service.cancel_session(session_id, current_user, direction)
    # The cancellation is committed; the refund message follows it
    if result.refund_event is not None:
        await publisher.publish(service.db, result.refund_event)
    return SessionResponse.from_model(result.session)


@router.post("/book/{period_id}", response_model=SessionResponse, status_code=201)
async def book_session(
    period_id: int,
    current_user: CurrentUser = Depends(require_role(UserRole.PATIENT)),
    service: SessionService = Depends(get_session_service),
):
    """Book an available period for the current patient"""
    session = service.book_session(period_id, current_user)
    return SessionResponse.from_model(session)


@router.get("/patient", response_model=PaginatedSessions)
async def get_patient_sessions(
    page: int = Query(1),
    itemsPerPage: int = Query(10),
    current_user: CurrentUser = Depends(require_role(UserRole.PATIENT)),
    service: SessionService = Depends(get_session_service),
):
    """Get the current patient's sessions, earliest period first"""
    page, itemsPerPage = validate_page(page, itemsPerPage)
    items, total = service.get_patient_sessions_paginated(page, itemsPerPage, current_user)
    return PaginatedSessions(
        items=[SessionResponse.from_model(s) for s in items],
        totalItems=total,
        page=page,
        itemsPerPage=itemsPerPage,
    )


@router.get("/patient/{session_id}", response_model=SessionResponse)
async def get_patient_session(
    session_id: int,
    current_user: CurrentUser = Depends(require_role(UserRole.PATIENT)),
    service: SessionService = Depends(get_session_service),
):
    session = service.get_patient_session(session_id, current_user)
    return SessionResponse.from_model(session)


@router.post("/patient/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session_by_patient(
    session_id: int,
    current_user: CurrentUser = Depends(require_role(UserRole.PATIENT)),
    service: SessionService = Depends(get_session_service),
    publisher: RefundEventPublisher = Depends(get_refund_publisher),
):
    """Cancel one of the current patient's sessions"""
    return await _cancel(session_id, current_user, RefundDirection.PATIENT, service, publisher)


@router.get("/doctor", response_model=PaginatedSessions)
async def get_doctor_sessions(
    page: int = Query(1),
    itemsPerPage: int = Query(10),
    current_user: CurrentUser = Depends(require_role(UserRole.DOCTOR)),
    service: SessionService = Depends(get_session_service),
):
    """Get the current doctor's sessions with patient details"""
    page, itemsPerPage = validate_page(page, itemsPerPage)
    items, total = service.get_doctor_sessions_paginated(page, itemsPerPage, current_user)
    return PaginatedSessions(
        items=[SessionResponse.from_model(s, include_patient=True) for s in items],
        totalItems=total,
        page=page,
        itemsPerPage=itemsPerPage,
    )


@router.get("/doctor/{session_id}", response_model=SessionResponse)
async def get_doctor_session(
    session_id: int,
    current_user: CurrentUser = Depends(require_role(UserRole.DOCTOR)),
    service: SessionService = Depends(get_session_service),
):
    session = service.get_doctor_session(session_id, current_user)
    return SessionResponse.from_model(session, include_patient=True)


@router.get("/doctor/{session_id}/patient", response_model=PatientSummary)
async def get_patient_from_session(
    session_id: int,
    current_user: CurrentUser = Depends(require_role(UserRole.DOCTOR)),
    service: SessionService = Depends(get_session_service),
):
    """Get the patient who booked one of the current doctor's sessions"""
    patient = service.get_patient_from_session(session_id, current_user)
    return PatientSummary.from_model(patient)


@router.post("/doctor/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session_by_doctor(
    session_id: int,
    current_user: CurrentUser = Depends(require_role(UserRole.DOCTOR)),
    service: SessionService = Depends(get_session_service),
    publisher: RefundEventPublisher = Depends(get_refund_publisher),
):
    """Cancel one of the current doctor's paid sessions"""
    return await _cancel(session_id, current_user, RefundDirection.DOCTOR, service, publisher)
