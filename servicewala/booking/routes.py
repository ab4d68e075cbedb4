"""
booking/routes.py

Booking Routes
- Customers request bookings and list them by view (upcoming, past, cancelled)
- Providers list their bookings and pending requests, see dashboard figures,
  and approve, reject or progress bookings
- Either party may read a booking; customers may cancel their own
"""

import logging
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.booking.schemas import (
    BookingCreate,
    BookingRead,
    BookingStatusUpdate,
    BookingView,
    ProviderStats,
)
from servicewala.booking.services import BookingService, bucket_bookings
from servicewala.core.config import settings
from servicewala.core.dependencies import PersistedUserDep, ProviderDep
from servicewala.core.exceptions import APIError
from servicewala.core.limiter import limiter
from servicewala.database.enums import BookingStatus
from servicewala.database.session import get_db
from servicewala.user.schemas import UserRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Annotated[AsyncSession, Depends(get_db)]) -> BookingService:
    return BookingService(
        db,
        page_size=settings.BOOKING_PAGE_SIZE,
        pending_page_size=settings.PENDING_PAGE_SIZE,
        dev_fallback=settings.BOOKING_DEV_FALLBACK,
    )


BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]


async def _get_provider_booking(
    bookings: BookingService, booking_id: UUID, provider: UserRead
) -> BookingRead:
    booking = await bookings.get_by_id(booking_id)
    if booking is None:
        raise APIError(status.HTTP_404_NOT_FOUND, "Booking not found")
    if booking.provider_id != provider.id:
        logger.warning(f"[BOOKING] Provider {provider.id} denied access to booking {booking_id}")
        raise APIError(status.HTTP_403_FORBIDDEN, "Not your booking")
    return booking


# ----------------------------------------------------
# Customer Endpoints
# ----------------------------------------------------
@router.post(
    "",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request Booking",
    description="Create a pending booking for a service. Any status sent is ignored.",
)
@limiter.limit("10/minute")
async def create_booking(
    request: Request,
    data: BookingCreate,
    bookings: BookingServiceDep,
    user: PersistedUserDep,
) -> BookingRead:
    return await bookings.create(user, data)


@router.get(
    "/me",
    response_model=list[BookingRead],
    status_code=status.HTTP_200_OK,
    summary="My Bookings",
    description="Bookings made by the current user, optionally limited to one view.",
)
@limiter.limit("30/minute")
async def get_my_bookings(
    request: Request,
    bookings: BookingServiceDep,
    user: PersistedUserDep,
    view: BookingView | None = Query(None, description="upcoming, past or cancelled"),
) -> list[BookingRead]:
    items = await bookings.list_for_user(user.id)
    if view is None:
        return items
    return bucket_bookings(items, date.today())[view]


# ----------------------------------------------------
# Provider Endpoints
# ----------------------------------------------------
@router.get(
    "/provider",
    response_model=list[BookingRead],
    status_code=status.HTTP_200_OK,
    summary="Provider Bookings",
)
@limiter.limit("30/minute")
async def get_provider_bookings(
    request: Request, bookings: BookingServiceDep, provider: ProviderDep
) -> list[BookingRead]:
    return await bookings.list_for_provider(provider.id)


@router.get(
    "/provider/pending",
    response_model=list[BookingRead],
    status_code=status.HTTP_200_OK,
    summary="Pending Booking Requests",
)
@limiter.limit("30/minute")
async def get_pending_requests(
    request: Request, bookings: BookingServiceDep, provider: ProviderDep
) -> list[BookingRead]:
    return await bookings.list_pending_for_provider(provider.id)


@router.get(
    "/provider/stats",
    response_model=ProviderStats,
    status_code=status.HTTP_200_OK,
    summary="Provider Dashboard Stats",
)
@limiter.limit("30/minute")
async def get_provider_stats(
    request: Request, bookings: BookingServiceDep, provider: ProviderDep
) -> ProviderStats:
    return await bookings.provider_stats(provider.id)


@router.post(
    "/{booking_id}/approve",
    response_model=BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Approve Booking",
)
@limiter.limit("20/minute")
async def approve_booking(
    request: Request, booking_id: UUID, bookings: BookingServiceDep, provider: ProviderDep
) -> BookingRead:
    await _get_provider_booking(bookings, booking_id, provider)
    return await bookings.approve(booking_id)


@router.post(
    "/{booking_id}/reject",
    response_model=BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Reject Booking",
)
@limiter.limit("20/minute")
async def reject_booking(
    request: Request, booking_id: UUID, bookings: BookingServiceDep, provider: ProviderDep
) -> BookingRead:
    await _get_provider_booking(bookings, booking_id, provider)
    return await bookings.reject(booking_id)


# ----------------------------------------------------
# Shared Endpoints
# ----------------------------------------------------
@router.get(
    "/{booking_id}",
    response_model=BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Get Booking",
)
@limiter.limit("30/minute")
async def get_booking(
    request: Request, booking_id: UUID, bookings: BookingServiceDep, user: PersistedUserDep
) -> BookingRead:
    booking = await bookings.get_by_id(booking_id)
    if booking is None or user.id not in (booking.user_id, booking.provider_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Booking not found")
    return booking


@router.patch(
    "/{booking_id}/status",
    response_model=BookingRead,
    status_code=status.HTTP_200_OK,
    summary="Update Booking Status",
    description="The provider may set any status; the customer may only cancel.",
)
@limiter.limit("20/minute")
async def update_booking_status(
    request: Request,
    booking_id: UUID,
    data: BookingStatusUpdate,
    bookings: BookingServiceDep,
    user: PersistedUserDep,
) -> BookingRead:
    booking = await bookings.get_by_id(booking_id)
    if booking is None or user.id not in (booking.user_id, booking.provider_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Booking not found")
    if user.id != booking.provider_id and data.status != BookingStatus.CANCELLED:
        raise APIError(status.HTTP_403_FORBIDDEN, "Customers can only cancel a booking")

    updated = await bookings.set_status(booking_id, data.status)
    if updated is None:
        raise APIError(status.HTTP_404_NOT_FOUND, "Booking not found")
    return updated
