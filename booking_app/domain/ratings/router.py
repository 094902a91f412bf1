"""Rating router - FastAPI endpoints for session ratings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentUser, UserRole, require_role
from ...database import get_db
from ...shared.validators import validate_page
from .schemas import PaginatedRatings, RatingCreate, RatingResponse, RatingUpdate
from .service import RatingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ratings", tags=["Ratings"])


def get_rating_service(db: Session = Depends(get_db)) -> RatingService:
    """Dependency injection for RatingService"""
    return RatingService(db)


@router.post("/session/{session_id}", response_model=RatingResponse, status_code=201)
async def create_rating(
    session_id: int,
    data: RatingCreate,
    current_user: CurrentUser = Depends(require_role(UserRole.PATIENT)),
    service: RatingService = Depends(get_rating_service),
):
    """Rate a finished session"""
    rating = service.create_rating(session_id, data, current_user)
    return RatingResponse.from_model(rating)


@router.patch("/{rating_id}", response_model=RatingResponse)
async def update_rating(
    rating_id: int,
    data: RatingUpdate,
    current_user: CurrentUser = Depends(require_role(UserRole.PATIENT)),
    service: RatingService = Depends(get_rating_service),
):
    rating = service.update_rating(rating_id, data, current_user)
    return RatingResponse.from_model(rating)


@router.delete("/{rating_id}")
async def delete_rating(
    rating_id: int,
    current_user: CurrentUser = Depends(require_role(UserRole.PATIENT)),
    service: RatingService = Depends(get_rating_service),
):
    return service.delete_rating(rating_id, current_user)


@router.get("/doctor/{doctor_id}", response_model=PaginatedRatings)
async def get_doctor_ratings(
    doctor_id: int,
    page: int = Query(1),
    itemsPerPage: int = Query(10),
    rating: Optional[int] = Query(None, ge=1, le=5),
    service: RatingService = Depends(get_rating_service),
):
    """Get a doctor's ratings, newest first (public)"""
    page, itemsPerPage = validate_page(page, itemsPerPage)
    items, total, average = service.get_doctor_ratings_paginated(
        doctor_id, page, itemsPerPage, rating=rating
    )
    return PaginatedRatings(
        items=[RatingResponse.from_model(r) for r in items],
        totalItems=total,
        page=page,
        itemsPerPage=itemsPerPage,
        averageRating=average,
    )
