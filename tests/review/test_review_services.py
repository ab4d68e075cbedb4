"""
tests/review/test_review_services.py

Review creation, listing and rating aggregation against an in-memory database.
"""

from datetime import date
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from servicewala.booking.schemas import BookingCreate
from servicewala.booking.services import BookingService
from servicewala.core.events import SERVICES_CHANGED, EventBus
from servicewala.core.exceptions import ReferenceResolutionError
from servicewala.database.enums import BookingStatus
from servicewala.database.models import Service, User
from servicewala.database.rows import USER_MAP, from_storage_row
from servicewala.review.schemas import ReviewCreate
from servicewala.review.services import ReviewService
from servicewala.service.schemas import ServiceCreate
from servicewala.service.services import ServiceListingService
from servicewala.user.schemas import UserRead
from servicewala.user.services import UserService


@pytest_asyncio.fixture
async def reviewer(stored_client: User) -> UserRead:
    return from_storage_row(USER_MAP, UserRead, stored_client)


@pytest_asyncio.fixture
async def service_id(db: AsyncSession, stored_provider: User):
    created = await ServiceListingService(db).create(
        ServiceCreate(
            providerId=stored_provider.auth_uid,
            categoryId="default-1",
            title="Switchboard Repair",
            description="Repair faulty switchboards",
            price=250,
            duration="1 hour",
            location="Powai",
            city="Mumbai",
            state="Maharashtra",
            availability=["Friday"],
        )
    )
    return created.id


@pytest.mark.asyncio
async def test_reviews_update_service_and_provider_ratings(
    db: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    reviewer: UserRead,
    service_id,
    stored_provider: User,
) -> None:
    reviews = ReviewService(db)

    await reviews.create(reviewer, ReviewCreate(serviceId=service_id, rating=5, comment="Great"))
    await reviews.create(reviewer, ReviewCreate(serviceId=service_id, rating=4))
    await reviews.create(reviewer, ReviewCreate(providerId=stored_provider.user_id, rating=3))

    async with session_factory() as fresh:
        service = await fresh.get(Service, service_id)
        provider = await UserService(fresh).get_by_id(stored_provider.user_id)

    assert service.rating == 4.5
    assert service.review_count == 2
    assert provider.rating == 4.0


@pytest.mark.asyncio
async def test_review_fields_and_listing(
    db: AsyncSession, reviewer: UserRead, service_id, stored_provider: User
) -> None:
    reviews = ReviewService(db)
    created = await reviews.create(
        reviewer, ReviewCreate(serviceId=service_id, rating=4, comment="Quick and tidy")
    )

    assert created.provider_id == stored_provider.user_id
    assert created.user_name == "Asha Patel"
    assert created.verified is False
    assert created.date is not None

    assert [r.id for r in await reviews.get_for_service(service_id)] == [created.id]
    assert [r.id for r in await reviews.get_for_provider(stored_provider.user_id)] == [created.id]
    assert await reviews.get_for_service(uuid4()) == []


@pytest.mark.asyncio
async def test_review_of_completed_booking_is_verified(
    db: AsyncSession, reviewer: UserRead, service_id
) -> None:
    bookings = BookingService(db)
    booking = await bookings.create(
        reviewer, BookingCreate(serviceId=service_id, date=date(2024, 6, 1), time="11:00")
    )
    for status in (BookingStatus.APPROVED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED):
        await bookings.set_status(booking.id, status)

    review = await ReviewService(db).create(
        reviewer, ReviewCreate(serviceId=service_id, bookingId=booking.id, rating=5)
    )

    assert review.verified is True


@pytest.mark.asyncio
async def test_review_of_open_booking_is_not_verified(
    db: AsyncSession, reviewer: UserRead, service_id
) -> None:
    booking = await BookingService(db).create(
        reviewer, BookingCreate(serviceId=service_id, date=date(2024, 6, 1), time="11:00")
    )

    review = await ReviewService(db).create(
        reviewer, ReviewCreate(serviceId=service_id, bookingId=booking.id, rating=2)
    )

    assert review.verified is False


@pytest.mark.asyncio
async def test_review_for_unknown_service(db: AsyncSession, reviewer: UserRead) -> None:
    with pytest.raises(ReferenceResolutionError, match="service reference"):
        await ReviewService(db).create(reviewer, ReviewCreate(serviceId=uuid4(), rating=3))


@pytest.mark.asyncio
async def test_review_provider_must_offer_service(
    db: AsyncSession, reviewer: UserRead, service_id, stored_client: User
) -> None:
    with pytest.raises(ReferenceResolutionError, match="does not offer service"):
        await ReviewService(db).create(
            reviewer,
            ReviewCreate(serviceId=service_id, providerId=stored_client.user_id, rating=3),
        )


@pytest.mark.asyncio
async def test_review_publishes_services_changed(
    db: AsyncSession, reviewer: UserRead, service_id
) -> None:
    events = EventBus()
    received: list[dict] = []

    async def handler(payload: dict) -> None:
        received.append(payload)

    events.subscribe(SERVICES_CHANGED, handler)
    await ReviewService(db, events).create(reviewer, ReviewCreate(serviceId=service_id, rating=4))

    assert received == [{"service_id": str(service_id), "action": "reviewed"}]


def test_review_needs_a_target() -> None:
    with pytest.raises(ValueError, match="providerId or serviceId"):
        ReviewCreate(rating=4)


def test_rating_must_be_between_one_and_five() -> None:
    with pytest.raises(ValueError):
        ReviewCreate(providerId=uuid4(), rating=6)
