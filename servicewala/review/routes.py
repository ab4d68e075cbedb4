"""
servicewala/review/routes.py

Review Routes
- Fetch reviews of a service or of a provider (Public)
- Submit a review (Authenticated user with a stored account)
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.core.dependencies import PersistedUserDep, get_events
from servicewala.core.events import EventBus
from servicewala.core.limiter import limiter
from servicewala.database.session import get_db
from servicewala.review.schemas import ReviewCreate, ReviewRead
from servicewala.review.services import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])

DBDep = Annotated[AsyncSession, Depends(get_db)]


# ----------------------------------------------------
# Public Review Endpoints
# ----------------------------------------------------
@router.get(
    "/service/{service_id}",
    response_model=list[ReviewRead],
    status_code=status.HTTP_200_OK,
    summary="Service Reviews",
)
@limiter.limit("30/minute")
async def get_service_reviews(request: Request, service_id: UUID, db: DBDep) -> list[ReviewRead]:
    return await ReviewService(db).get_for_service(service_id)


@router.get(
    "/provider/{provider_id}",
    response_model=list[ReviewRead],
    status_code=status.HTTP_200_OK,
    summary="Provider Reviews",
)
@limiter.limit("30/minute")
async def get_provider_reviews(request: Request, provider_id: UUID, db: DBDep) -> list[ReviewRead]:
    return await ReviewService(db).get_for_provider(provider_id)


# ----------------------------------------------------
# Authenticated Review Endpoints
# ----------------------------------------------------
@router.post(
    "",
    response_model=ReviewRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Review",
    description="Review a provider or one of their services; ratings are recomputed.",
)
@limiter.limit("5/minute")
async def create_review(
    request: Request,
    data: ReviewCreate,
    db: DBDep,
    events: Annotated[EventBus, Depends(get_events)],
    user: PersistedUserDep,
) -> ReviewRead:
    return await ReviewService(db, events).create(user, data)
