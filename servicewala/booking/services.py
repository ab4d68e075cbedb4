"""
servicewala/booking/services.py

Booking Service Layer
Handles booking requests from customers and status changes by providers:
creation with a snapshot of the booked service, approval, rejection, the
generic status setter, listings and the provider dashboard figures.

Status rules:
- A new booking is always pending, whatever status the caller sends
- Any non-terminal status may move to any other status
- Re-applying the current status is a no-op
- completed, rejected and cancelled are terminal
"""

import logging
import re
import uuid
from collections.abc import Iterable
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from servicewala.booking.schemas import BookingCreate, BookingRead, BookingView, ProviderStats
from servicewala.core.exceptions import (
    BookingPermissionError,
    InvalidTransitionError,
    ReferenceResolutionError,
)
from servicewala.database.enums import (
    ACTIVE_BOOKING_STATUSES,
    RESPONSE_BOOKING_STATUSES,
    TERMINAL_BOOKING_STATUSES,
    BookingStatus,
)
from servicewala.database.models import Booking, Service, User
from servicewala.database.rows import BOOKING_MAP, from_storage_row, to_storage_row
from servicewala.user.schemas import UserRead

logger = logging.getLogger(__name__)

# SQLSTATE raised when a row-level security policy rejects a write
INSUFFICIENT_PRIVILEGE = "42501"

_DURATION_PREFIX = re.compile(r"^\s*(\d+(?:\.\d+)?)")


# ---------------------------------------------------
# Helpers
# ---------------------------------------------------
def _now() -> datetime:
    return datetime.now(timezone.utc)


def _read(booking: Booking) -> BookingRead:
    return from_storage_row(BOOKING_MAP, BookingRead, booking)


def estimate_duration(duration: str | None) -> float:
    """Numeric prefix of a duration text ("2 hours" -> 2.0); 1.0 when there is none."""
    match = _DURATION_PREFIX.match(duration or "")
    return float(match.group(1)) if match else 1.0


def _sqlstate(error: DBAPIError) -> str | None:
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def classify_booking(booking: BookingRead, today: date) -> BookingView:
    """Assigns a booking to exactly one view bucket."""
    if booking.status == BookingStatus.CANCELLED:
        return BookingView.CANCELLED
    if booking.date < today:
        return BookingView.PAST
    return BookingView.UPCOMING


def bucket_bookings(
    bookings: Iterable[BookingRead], today: date
) -> dict[BookingView, list[BookingRead]]:
    buckets: dict[BookingView, list[BookingRead]] = {view: [] for view in BookingView}
    for booking in bookings:
        buckets[classify_booking(booking, today)].append(booking)
    return buckets


# ---------------------------------------------------
# BookingService
# ---------------------------------------------------
class BookingService:
    """Booking creation, status changes and listings."""

    def __init__(
        self,
        db: AsyncSession,
        page_size: int = 20,
        pending_page_size: int = 10,
        dev_fallback: bool = False,
    ) -> None:
        self.db = db
        self.page_size = page_size
        self.pending_page_size = pending_page_size
        self.dev_fallback = dev_fallback

    # ---------------------------------------------------
    # Create
    # ---------------------------------------------------
    async def create(self, customer: UserRead, data: BookingCreate) -> BookingRead:
        """
        Creates a pending booking with a snapshot of the live service.

        Raises:
            ReferenceResolutionError: customer has no stored record or service is unknown.
            BookingPermissionError: the store's access policy rejected the insert.
        """
        if customer.id is None:
            raise ReferenceResolutionError("customer", customer.auth_uid, "has no stored account")

        result = await self.db.execute(
            select(Service)
            .options(selectinload(Service.provider))
            .filter(Service.service_id == data.service_id)
            .execution_options(populate_existing=True)
        )
        service = result.scalars().first()
        if service is None:
            raise ReferenceResolutionError("service", data.service_id, "does not exist")

        if data.status not in (None, BookingStatus.PENDING):
            logger.debug(f"[BOOKING] Ignoring requested status '{data.status}' on create")

        fields: dict[str, Any] = {
            "id": uuid.uuid4(),
            "user_id": customer.id,
            "service_id": service.service_id,
            "provider_id": service.provider_id,
            "service_name": service.title,
            "provider_name": service.provider.name if service.provider else "",
            "customer_name": customer.name,
            "price": service.price,
            "image": service.images[0] if service.images else None,
            "location": service.location,
            "date": data.date,
            "time": data.time,
            "special_instructions": data.special_instructions,
            "estimated_duration": estimate_duration(service.duration),
            "status": BookingStatus.PENDING,
            "requested_at": _now(),
        }
        booking = Booking(**to_storage_row(BOOKING_MAP, fields))
        self.db.add(booking)

        try:
            await self.db.commit()
        except DBAPIError as e:
            await self.db.rollback()
            if _sqlstate(e) != INSUFFICIENT_PRIVILEGE:
                logger.error(f"[BOOKING ERROR] Failed to create booking: {e}", exc_info=True)
                raise
            if not self.dev_fallback:
                logger.error(f"[BOOKING] Access policy rejected booking for user {customer.id}")
                raise BookingPermissionError()
            logger.warning(
                f"[BOOKING] Access policy rejected booking for user {customer.id}; "
                "returning a synthetic booking (development fallback)"
            )
            return BookingRead(**fields, is_synthetic=True)

        await self.db.refresh(booking)
        logger.info(f"[BOOKING] Created booking {booking.booking_id} for service {service.service_id}")
        return _read(booking)

    # ---------------------------------------------------
    # Status Changes
    # ---------------------------------------------------
    async def set_status(self, booking_id: UUID, new_status: BookingStatus) -> BookingRead | None:
        """
        Moves a booking to `new_status`. Returns None when the booking does not exist.

        Raises:
            InvalidTransitionError: the booking is already in another terminal status.
        """
        booking = await self.db.get(Booking, booking_id)
        if booking is None:
            return None

        if booking.status == new_status:
            logger.debug(f"[BOOKING] Booking {booking_id} already {new_status.value}")
            return _read(booking)

        if booking.status in TERMINAL_BOOKING_STATUSES:
            logger.warning(
                f"[BOOKING] Rejected change of terminal booking {booking_id} "
                f"from {booking.status.value} to {new_status.value}"
            )
            raise InvalidTransitionError(booking_id, booking.status.value, new_status.value)

        previous = booking.status
        booking.status = new_status
        if new_status in RESPONSE_BOOKING_STATUSES and booking.responded_at is None:
            booking.responded_at = _now()

        if new_status == BookingStatus.COMPLETED:
            await self.db.execute(
                update(User)
                .where(User.user_id == booking.provider_id)
                .values(completed_jobs=User.completed_jobs + 1)
            )

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[BOOKING ERROR] Failed to update booking {booking_id}: {e}")
            raise

        await self.db.refresh(booking)
        logger.info(f"[BOOKING] Booking {booking_id}: {previous.value} -> {new_status.value}")
        return _read(booking)

    async def approve(self, booking_id: UUID) -> BookingRead | None:
        return await self.set_status(booking_id, BookingStatus.APPROVED)

    async def reject(self, booking_id: UUID) -> BookingRead | None:
        return await self.set_status(booking_id, BookingStatus.REJECTED)

    # ---------------------------------------------------
    # Reads
    # ---------------------------------------------------
    async def get_by_id(self, booking_id: UUID) -> BookingRead | None:
        booking = await self.db.get(Booking, booking_id)
        return _read(booking) if booking else None

    async def _list(self, *criteria: Any, limit: int) -> list[BookingRead]:
        stmt = (
            select(Booking)
            .filter(*criteria)
            .order_by(Booking.requested_at.desc(), Booking.created_at.desc())
            .limit(limit)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"[BOOKING] Booking listing failed: {e}")
            return []
        return [_read(b) for b in result.scalars().all()]

    async def list_for_user(self, user_id: UUID) -> list[BookingRead]:
        return await self._list(Booking.user_id == user_id, limit=self.page_size)

    async def list_for_provider(self, provider_id: UUID) -> list[BookingRead]:
        return await self._list(Booking.provider_id == provider_id, limit=self.page_size)

    async def list_pending_for_provider(self, provider_id: UUID) -> list[BookingRead]:
        return await self._list(
            Booking.provider_id == provider_id,
            Booking.status == BookingStatus.PENDING,
            limit=self.pending_page_size,
        )

    async def provider_stats(self, provider_id: UUID, today: date | None = None) -> ProviderStats:
        """Dashboard figures; earnings count completed bookings dated in the current month."""
        today = today or date.today()
        month_start = today.replace(day=1)
        next_month = (
            month_start.replace(year=month_start.year + 1, month=1)
            if month_start.month == 12
            else month_start.replace(month=month_start.month + 1)
        )

        total_services = await self.db.scalar(
            select(func.count())
            .select_from(Service)
            .filter(Service.provider_id == provider_id, Service.is_active.is_(True))
        )
        active_bookings = await self.db.scalar(
            select(func.count())
            .select_from(Booking)
            .filter(
                Booking.provider_id == provider_id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        monthly_earnings = await self.db.scalar(
            select(func.coalesce(func.sum(Booking.price), 0)).filter(
                Booking.provider_id == provider_id,
                Booking.status == BookingStatus.COMPLETED,
                Booking.booking_date >= month_start,
                Booking.booking_date < next_month,
            )
        )
        provider = await self.db.get(User, provider_id)

        return ProviderStats(
            total_services=total_services or 0,
            active_bookings=active_bookings or 0,
            completed_jobs=provider.completed_jobs if provider else 0,
            rating=provider.rating if provider else 0.0,
            monthly_earnings=float(monthly_earnings or 0),
        )
