"""
tests/booking/test_booking_routes.py

Test cases for booking API endpoints.
Covers customer requests, provider actions and access rules.
"""

from collections.abc import Callable
from datetime import date, timedelta
from typing import Any
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import status
from httpx import AsyncClient

from servicewala.booking import services as booking_services
from servicewala.booking.schemas import BookingRead, ProviderStats
from servicewala.core.exceptions import InvalidTransitionError
from servicewala.database.enums import BookingStatus
from servicewala.user.schemas import UserRead


@pytest.fixture
def make_booking_read(
    fake_client_user: UserRead, fake_provider_user: UserRead
) -> Callable[..., BookingRead]:
    """Factory for bookings between the fake client and the fake provider."""

    def _make(**overrides: Any) -> BookingRead:
        fields: dict[str, Any] = {
            "id": uuid4(),
            "user_id": fake_client_user.id,
            "service_id": uuid4(),
            "provider_id": fake_provider_user.id,
            "service_name": "Kitchen Sink Repair",
            "provider_name": fake_provider_user.name,
            "customer_name": fake_client_user.name,
            "price": 150.0,
            "location": "Andheri West",
            "date": date.today() + timedelta(days=3),
            "time": "10:00",
            "estimated_duration": 2.0,
            "status": BookingStatus.PENDING,
        }
        fields.update(overrides)
        return BookingRead(**fields)

    return _make


# --- Customer Endpoints ---


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "create", new_callable=AsyncMock)
async def test_create_booking(
    mock_create: AsyncMock,
    make_booking_read: Callable[..., BookingRead],
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_client_user: UserRead,
) -> None:
    booking = make_booking_read()
    mock_create.return_value = booking

    response = await async_client.post(
        "/bookings",
        json={
            "serviceId": str(booking.service_id),
            "date": booking.date.isoformat(),
            "time": "10:00",
            "specialInstructions": "Ring twice",
            "status": "completed",
        },
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "pending"
    assert data["serviceName"] == "Kitchen Sink Repair"
    assert data["isSynthetic"] is False
    customer, payload = mock_create.await_args.args
    assert customer == mock_current_client_user
    assert payload.special_instructions == "Ring twice"


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "create", new_callable=AsyncMock)
async def test_create_booking_without_stored_account(
    mock_create: AsyncMock,
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_fallback_user: UserRead,
) -> None:
    response = await async_client.post(
        "/bookings",
        json={"serviceId": str(uuid4()), "date": "2030-01-01", "time": "10:00"},
    )

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    mock_create.assert_not_awaited()


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "list_for_user", new_callable=AsyncMock)
async def test_my_bookings_by_view(
    mock_list: AsyncMock,
    make_booking_read: Callable[..., BookingRead],
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_client_user: UserRead,
) -> None:
    upcoming = make_booking_read()
    past = make_booking_read(date=date.today() - timedelta(days=2), status=BookingStatus.COMPLETED)
    cancelled = make_booking_read(status=BookingStatus.CANCELLED)
    mock_list.return_value = [upcoming, past, cancelled]

    everything = await async_client.get("/bookings/me")
    past_only = await async_client.get("/bookings/me?view=past")
    cancelled_only = await async_client.get("/bookings/me?view=cancelled")

    assert len(everything.json()) == 3
    assert [b["id"] for b in past_only.json()] == [str(past.id)]
    assert [b["id"] for b in cancelled_only.json()] == [str(cancelled.id)]
    mock_list.assert_awaited_with(mock_current_client_user.id)


# --- Provider Endpoints ---


@pytest.mark.asyncio
async def test_clients_cannot_see_pending_requests(
    async_client: AsyncClient, override_get_db: None, mock_current_client_user: UserRead
) -> None:
    response = await async_client.get("/bookings/provider/pending")

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json() == {"detail": {"error": "Access denied for role: client"}}


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "list_pending_for_provider", new_callable=AsyncMock)
async def test_pending_requests(
    mock_pending: AsyncMock,
    make_booking_read: Callable[..., BookingRead],
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_provider_user: UserRead,
) -> None:
    mock_pending.return_value = [make_booking_read()]

    response = await async_client.get("/bookings/provider/pending")

    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()) == 1
    mock_pending.assert_awaited_once_with(mock_current_provider_user.id)


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "provider_stats", new_callable=AsyncMock)
async def test_provider_stats(
    mock_stats: AsyncMock,
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_provider_user: UserRead,
) -> None:
    mock_stats.return_value = ProviderStats(
        total_services=3, active_bookings=2, completed_jobs=12, rating=4.6, monthly_earnings=900.0
    )

    response = await async_client.get("/bookings/provider/stats")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "totalServices": 3,
        "activeBookings": 2,
        "completedJobs": 12,
        "rating": 4.6,
        "monthlyEarnings": 900.0,
    }


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "approve", new_callable=AsyncMock)
@patch.object(booking_services.BookingService, "get_by_id", new_callable=AsyncMock)
async def test_approve_booking(
    mock_get: AsyncMock,
    mock_approve: AsyncMock,
    make_booking_read: Callable[..., BookingRead],
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_provider_user: UserRead,
) -> None:
    booking = make_booking_read()
    mock_get.return_value = booking
    mock_approve.return_value = booking.model_copy(update={"status": BookingStatus.APPROVED})

    response = await async_client.post(f"/bookings/{booking.id}/approve")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "approved"
    mock_approve.assert_awaited_once_with(booking.id)


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "reject", new_callable=AsyncMock)
@patch.object(booking_services.BookingService, "get_by_id", new_callable=AsyncMock)
async def test_reject_other_providers_booking(
    mock_get: AsyncMock,
    mock_reject: AsyncMock,
    make_booking_read: Callable[..., BookingRead],
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_provider_user: UserRead,
) -> None:
    booking = make_booking_read(provider_id=uuid4())
    mock_get.return_value = booking

    response = await async_client.post(f"/bookings/{booking.id}/reject")

    assert response.status_code == status.HTTP_403_FORBIDDEN
    mock_reject.assert_not_awaited()


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "get_by_id", new_callable=AsyncMock)
async def test_approve_missing_booking(
    mock_get: AsyncMock,
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_provider_user: UserRead,
) -> None:
    mock_get.return_value = None

    response = await async_client.post(f"/bookings/{uuid4()}/approve")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"detail": {"error": "Booking not found"}}


# --- Shared Endpoints ---


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "get_by_id", new_callable=AsyncMock)
async def test_booking_hidden_from_strangers(
    mock_get: AsyncMock,
    make_booking_read: Callable[..., BookingRead],
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_client_user: UserRead,
) -> None:
    booking = make_booking_read(user_id=uuid4())
    mock_get.return_value = booking

    response = await async_client.get(f"/bookings/{booking.id}")

    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "set_status", new_callable=AsyncMock)
@patch.object(booking_services.BookingService, "get_by_id", new_callable=AsyncMock)
async def test_customer_can_only_cancel(
    mock_get: AsyncMock,
    mock_set_status: AsyncMock,
    make_booking_read: Callable[..., BookingRead],
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_client_user: UserRead,
) -> None:
    booking = make_booking_read()
    mock_get.return_value = booking
    mock_set_status.return_value = booking.model_copy(update={"status": BookingStatus.CANCELLED})

    denied = await async_client.patch(f"/bookings/{booking.id}/status", json={"status": "completed"})
    allowed = await async_client.patch(f"/bookings/{booking.id}/status", json={"status": "cancelled"})

    assert denied.status_code == status.HTTP_403_FORBIDDEN
    assert allowed.status_code == status.HTTP_200_OK
    assert allowed.json()["status"] == "cancelled"
    mock_set_status.assert_awaited_once_with(booking.id, BookingStatus.CANCELLED)


@pytest.mark.asyncio
@patch.object(booking_services.BookingService, "set_status", new_callable=AsyncMock)
@patch.object(booking_services.BookingService, "get_by_id", new_callable=AsyncMock)
async def test_status_change_out_of_terminal_state(
    mock_get: AsyncMock,
    mock_set_status: AsyncMock,
    make_booking_read: Callable[..., BookingRead],
    async_client: AsyncClient,
    override_get_db: None,
    mock_current_provider_user: UserRead,
) -> None:
    booking = make_booking_read(status=BookingStatus.REJECTED)
    mock_get.return_value = booking
    mock_set_status.side_effect = InvalidTransitionError(booking.id, "rejected", "approved")

    response = await async_client.patch(f"/bookings/{booking.id}/status", json={"status": "approved"})

    assert response.status_code == status.HTTP_409_CONFLICT
    assert "cannot move to approved" in response.json()["detail"]["error"]
