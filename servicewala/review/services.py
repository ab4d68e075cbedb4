"""
servicewala/review/services.py

Review Services
Business logic for reviews:
- Submit a review for a provider or one of their services (Authenticated user)
- Retrieve reviews of a service or of a provider (Public)
- Keep service and provider ratings in step with their reviews
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.core.events import SERVICES_CHANGED, EventBus
from servicewala.core.exceptions import ReferenceResolutionError
from servicewala.database.enums import BookingStatus
from servicewala.database.models import Booking, Review, Service, User
from servicewala.database.rows import REVIEW_MAP, from_storage_row
from servicewala.review.schemas import ReviewCreate, ReviewRead
from servicewala.user.schemas import UserRead

logger = logging.getLogger(__name__)


def _read(review: Review) -> ReviewRead:
    return from_storage_row(REVIEW_MAP, ReviewRead, review)


# ---------------------------------------------------
# Review Service
# ---------------------------------------------------
class ReviewService:
    """Service layer for reviews and rating aggregates."""

    def __init__(self, db: AsyncSession, events: EventBus | None = None) -> None:
        self.db = db
        self.events = events

    # ---------------------------------------------------
    # Reads
    # ---------------------------------------------------
    async def _list(self, *criteria) -> list[ReviewRead]:
        stmt = (
            select(Review)
            .filter(*criteria)
            .order_by(Review.created_at.desc(), Review.review_id)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"[REVIEW] Review listing failed: {e}")
            return []
        return [_read(r) for r in result.scalars().all()]

    async def get_for_service(self, service_id: UUID) -> list[ReviewRead]:
        return await self._list(Review.service_id == service_id)

    async def get_for_provider(self, provider_id: UUID) -> list[ReviewRead]:
        return await self._list(Review.provider_id == provider_id)

    # ---------------------------------------------------
    # Create
    # ---------------------------------------------------
    async def create(self, reviewer: UserRead, data: ReviewCreate) -> ReviewRead:
        """
        Stores a review and recomputes the affected ratings in the same transaction.
        A review is verified when it references a completed booking of the reviewer.

        Raises:
            ReferenceResolutionError: unknown service, provider or booking, or a
                service that the given provider does not offer.
        """
        if reviewer.id is None:
            raise ReferenceResolutionError("reviewer", reviewer.auth_uid, "has no stored account")

        service = None
        if data.service_id is not None:
            service = await self.db.get(Service, data.service_id)
            if service is None:
                raise ReferenceResolutionError("service", data.service_id, "does not exist")

        provider_id = data.provider_id or service.provider_id
        if service is not None and service.provider_id != provider_id:
            raise ReferenceResolutionError(
                "provider", provider_id, f"does not offer service {service.service_id}"
            )
        provider = await self.db.get(User, provider_id)
        if provider is None:
            raise ReferenceResolutionError("provider", provider_id, "does not exist")

        verified = False
        if data.booking_id is not None:
            booking = await self.db.get(Booking, data.booking_id)
            if booking is None:
                raise ReferenceResolutionError("booking", data.booking_id, "does not exist")
            verified = booking.user_id == reviewer.id and booking.status == BookingStatus.COMPLETED

        review = Review(
            user_id=reviewer.id,
            provider_id=provider_id,
            service_id=data.service_id,
            booking_id=data.booking_id,
            rating=data.rating,
            comment=data.comment,
            user_name=reviewer.name,
            user_avatar=reviewer.avatar,
            verified=verified,
        )
        self.db.add(review)

        try:
            await self.db.flush()
            if service is not None:
                rating, count = await self._aggregate(Review.service_id == service.service_id)
                service.rating = rating
                service.review_count = count
            provider.rating, _ = await self._aggregate(Review.provider_id == provider_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[REVIEW ERROR] Failed to store review: {e}", exc_info=True)
            raise

        await self.db.refresh(review)
        logger.info(f"[REVIEW] Review {review.review_id} stored for provider {provider_id}")

        if self.events is not None:
            await self.events.publish(
                SERVICES_CHANGED,
                {"service_id": str(data.service_id) if data.service_id else None, "action": "reviewed"},
            )
        return _read(review)

    async def _aggregate(self, criterion) -> tuple[float, int]:
        """Average rating (rounded to one decimal) and review count."""
        row = (
            await self.db.execute(select(func.avg(Review.rating), func.count()).filter(criterion))
        ).one()
        average, count = row
        return round(float(average or 0.0), 1), int(count)
