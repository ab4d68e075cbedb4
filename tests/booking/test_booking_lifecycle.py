"""
tests/booking/test_booking_lifecycle.py

Booking creation, status changes and classification against an in-memory
database.
"""

from datetime import date, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from servicewala.booking.schemas import BookingCreate, BookingRead, BookingView
from servicewala.booking.services import (
    BookingService,
    bucket_bookings,
    classify_booking,
    estimate_duration,
)
from servicewala.core.exceptions import (
    BookingPermissionError,
    InvalidTransitionError,
    ReferenceResolutionError,
)
from servicewala.database.enums import TERMINAL_BOOKING_STATUSES, BookingStatus
from servicewala.database.models import Service, User
from servicewala.database.rows import USER_MAP, from_storage_row
from servicewala.service.schemas import ServiceCreate
from servicewala.service.services import ServiceListingService
from servicewala.user.schemas import UserRead
from servicewala.user.services import UserService

TODAY = date(2024, 6, 15)


class PolicyViolation(Exception):
    sqlstate = "42501"


@pytest_asyncio.fixture
async def customer(stored_client: User) -> UserRead:
    return from_storage_row(USER_MAP, UserRead, stored_client)


@pytest_asyncio.fixture
async def service(db: AsyncSession, stored_provider: User) -> Service:
    created = await ServiceListingService(db).create(
        ServiceCreate(
            providerId=stored_provider.auth_uid,
            categoryId="default-2",
            title="Tap Replacement",
            description="Replace old taps",
            price=350,
            duration="2 hours",
            location="Andheri East",
            city="Mumbai",
            state="Maharashtra",
            availability=["Saturday"],
            images=["https://img.example.com/tap.jpg", "https://img.example.com/tap2.jpg"],
        )
    )
    return await db.get(Service, created.id)


def _request(service: Service, **overrides) -> BookingCreate:
    fields = {
        "serviceId": service.service_id,
        "date": TODAY + timedelta(days=3),
        "time": "10:30",
        "specialInstructions": "Ring twice",
    }
    fields.update(overrides)
    return BookingCreate(**fields)


# ---------------------------------------------------
# Creation
# ---------------------------------------------------
@pytest.mark.asyncio
async def test_create_snapshots_service_and_forces_pending(
    db: AsyncSession, customer: UserRead, service: Service
) -> None:
    booking = await BookingService(db).create(customer, _request(service, status="completed"))

    assert booking.status == BookingStatus.PENDING
    assert booking.requested_at is not None
    assert booking.responded_at is None
    assert booking.service_name == "Tap Replacement"
    assert booking.provider_name == "Ravi Kumar"
    assert booking.customer_name == "Asha Patel"
    assert booking.price == 350
    assert booking.image == "https://img.example.com/tap.jpg"
    assert booking.location == "Andheri East"
    assert booking.estimated_duration == 2
    assert booking.provider_id == service.provider_id
    assert booking.is_synthetic is False


@pytest.mark.asyncio
async def test_create_for_unknown_service(db: AsyncSession, customer: UserRead) -> None:
    request = BookingCreate(serviceId=uuid4(), date=TODAY, time="09:00")

    with pytest.raises(ReferenceResolutionError, match="service reference"):
        await BookingService(db).create(customer, request)


@pytest.mark.asyncio
async def test_create_requires_stored_customer(
    db: AsyncSession, service: Service, fake_fallback_user: UserRead
) -> None:
    with pytest.raises(ReferenceResolutionError, match="customer reference"):
        await BookingService(db).create(fake_fallback_user, _request(service))


@pytest.mark.asyncio
async def test_access_policy_rejection_is_a_hard_failure(
    db: AsyncSession, customer: UserRead, service: Service
) -> None:
    error = DBAPIError("INSERT INTO bookings", {}, PolicyViolation("row-level security"))

    with patch.object(db, "commit", AsyncMock(side_effect=error)):
        with pytest.raises(BookingPermissionError) as exc_info:
            await BookingService(db).create(customer, _request(service))

    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_access_policy_rejection_with_dev_fallback(
    db: AsyncSession, customer: UserRead, service: Service
) -> None:
    error = DBAPIError("INSERT INTO bookings", {}, PolicyViolation("row-level security"))

    with patch.object(db, "commit", AsyncMock(side_effect=error)):
        booking = await BookingService(db, dev_fallback=True).create(customer, _request(service))

    assert booking.is_synthetic is True
    assert booking.status == BookingStatus.PENDING
    assert await BookingService(db).get_by_id(booking.id) is None


# ---------------------------------------------------
# Lifecycle
# ---------------------------------------------------
@pytest.mark.asyncio
async def test_full_lifecycle_with_idempotent_approval(
    db: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    customer: UserRead,
    service: Service,
) -> None:
    bookings = BookingService(db)
    booking = await bookings.create(customer, _request(service))

    approved = await bookings.approve(booking.id)
    assert approved.status == BookingStatus.APPROVED
    assert approved.responded_at is not None

    again = await bookings.approve(booking.id)
    assert again.status == BookingStatus.APPROVED
    assert again.responded_at == approved.responded_at

    in_progress = await bookings.set_status(booking.id, BookingStatus.IN_PROGRESS)
    assert in_progress.responded_at == approved.responded_at

    completed = await bookings.set_status(booking.id, BookingStatus.COMPLETED)
    assert completed.status == BookingStatus.COMPLETED

    with pytest.raises(InvalidTransitionError) as exc_info:
        await bookings.set_status(booking.id, BookingStatus.CANCELLED)
    assert exc_info.value.status_code == 409

    async with session_factory() as fresh:
        provider = await UserService(fresh).get_by_id(service.provider_id)
    assert provider.completed_jobs == 1


@pytest.mark.asyncio
async def test_rejected_booking_cannot_be_approved(
    db: AsyncSession, customer: UserRead, service: Service
) -> None:
    bookings = BookingService(db)
    booking = await bookings.create(customer, _request(service))

    rejected = await bookings.reject(booking.id)
    assert rejected.status == BookingStatus.REJECTED
    assert rejected.responded_at is not None

    with pytest.raises(InvalidTransitionError):
        await bookings.approve(booking.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("terminal", sorted(TERMINAL_BOOKING_STATUSES))
async def test_terminal_statuses_never_change(
    db: AsyncSession, customer: UserRead, service: Service, terminal: BookingStatus
) -> None:
    bookings = BookingService(db)
    booking = await bookings.create(customer, _request(service))
    await bookings.set_status(booking.id, terminal)

    for status in BookingStatus:
        if status == terminal:
            assert (await bookings.set_status(booking.id, status)).status == terminal
        else:
            with pytest.raises(InvalidTransitionError):
                await bookings.set_status(booking.id, status)

    assert (await bookings.get_by_id(booking.id)).status == terminal


@pytest.mark.asyncio
async def test_status_change_of_missing_booking(db: AsyncSession) -> None:
    assert await BookingService(db).set_status(uuid4(), BookingStatus.APPROVED) is None


# ---------------------------------------------------
# Listings and stats
# ---------------------------------------------------
@pytest.mark.asyncio
async def test_listings_are_newest_first_and_limited(
    db: AsyncSession, customer: UserRead, service: Service
) -> None:
    bookings = BookingService(db, page_size=3, pending_page_size=2)
    created = [await bookings.create(customer, _request(service)) for _ in range(4)]
    await bookings.approve(created[0].id)

    for_user = await bookings.list_for_user(customer.id)
    assert [b.id for b in for_user] == [b.id for b in reversed(created)][:3]

    pending = await bookings.list_pending_for_provider(service.provider_id)
    assert [b.id for b in pending] == [created[3].id, created[2].id]

    assert len(await bookings.list_for_provider(service.provider_id)) == 3


@pytest.mark.asyncio
async def test_provider_stats(db: AsyncSession, customer: UserRead, service: Service) -> None:
    bookings = BookingService(db)
    done = await bookings.create(customer, _request(service, date=TODAY))
    await bookings.create(customer, _request(service))
    cancelled = await bookings.create(customer, _request(service))
    for status in (BookingStatus.APPROVED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED):
        await bookings.set_status(done.id, status)
    await bookings.set_status(cancelled.id, BookingStatus.CANCELLED)

    stats = await bookings.provider_stats(service.provider_id, today=TODAY)

    assert stats.total_services == 1
    assert stats.active_bookings == 1
    assert stats.completed_jobs == 1
    assert stats.monthly_earnings == 350


# ---------------------------------------------------
# Classification
# ---------------------------------------------------
def _booking(status: BookingStatus, day: date) -> BookingRead:
    return BookingRead(
        id=uuid4(),
        user_id=uuid4(),
        service_id=uuid4(),
        provider_id=uuid4(),
        service_name="Tap Replacement",
        provider_name="Ravi Kumar",
        price=350,
        location="Andheri East",
        date=day,
        time="10:30",
        status=status,
    )


@pytest.mark.parametrize(
    "status, offset, expected",
    [
        (BookingStatus.CANCELLED, -1, BookingView.CANCELLED),
        (BookingStatus.CANCELLED, 1, BookingView.CANCELLED),
        (BookingStatus.COMPLETED, -1, BookingView.PAST),
        (BookingStatus.PENDING, -1, BookingView.PAST),
        (BookingStatus.PENDING, 0, BookingView.UPCOMING),
        (BookingStatus.COMPLETED, 2, BookingView.UPCOMING),
        (BookingStatus.APPROVED, 5, BookingView.UPCOMING),
    ],
)
def test_classify_booking(status: BookingStatus, offset: int, expected: BookingView) -> None:
    assert classify_booking(_booking(status, TODAY + timedelta(days=offset)), TODAY) == expected


def test_every_booking_lands_in_exactly_one_bucket() -> None:
    bookings = [
        _booking(status, TODAY + timedelta(days=offset))
        for status in BookingStatus
        for offset in (-3, 0, 3)
    ]

    buckets = bucket_bookings(bookings, TODAY)

    assigned = [b.id for group in buckets.values() for b in group]
    assert sorted(assigned) == sorted(b.id for b in bookings)
    assert set(buckets) == set(BookingView)


@pytest.mark.parametrize(
    "text, expected", [("2 hours", 2), ("1.5 hrs", 1.5), ("90 minutes", 90), ("half day", 1), (None, 1)]
)
def test_estimate_duration(text: str | None, expected: float) -> None:
    assert estimate_duration(text) == expected
