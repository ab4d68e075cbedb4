"""
booking/schemas.py

Pydantic schemas for booking creation, status changes, reads and the
provider dashboard summary.
"""

import datetime as dt
from enum import Enum
from uuid import UUID

from pydantic import Field

from servicewala.core.schemas import CamelModel
from servicewala.database.enums import BookingStatus


# ---------------------------------------
# Booking Schemas
# ---------------------------------------
class BookingCreate(CamelModel):
    """
    Schema for a customer booking request. Any `status` sent by the caller is
    ignored; new bookings always start as pending.
    """

    service_id: UUID = Field(..., description="Service being booked")
    date: dt.date = Field(..., description="Requested date")
    time: str = Field(..., min_length=1, max_length=20, description="Requested time slot")
    special_instructions: str | None = Field(None, max_length=2000)
    status: BookingStatus | None = Field(None, description="Ignored")


class BookingStatusUpdate(CamelModel):
    status: BookingStatus


class BookingRead(CamelModel):
    """Booking with its denormalized snapshot fields."""

    id: UUID
    user_id: UUID
    service_id: UUID
    provider_id: UUID
    service_name: str
    provider_name: str
    customer_name: str | None = None
    price: float
    image: str | None = None
    location: str
    date: dt.date
    time: str
    special_instructions: str | None = None
    estimated_duration: float | None = None
    status: BookingStatus
    requested_at: dt.datetime | None = None
    responded_at: dt.datetime | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    is_synthetic: bool = Field(False, description="Not persisted; development fallback only")


class BookingView(str, Enum):
    UPCOMING = "upcoming"
    PAST = "past"
    CANCELLED = "cancelled"


class ProviderStats(CamelModel):
    """Figures shown on the provider dashboard."""

    total_services: int
    active_bookings: int
    completed_jobs: int
    rating: float
    monthly_earnings: float
