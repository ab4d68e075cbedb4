"""
booking/models.py

Defines the Booking model.
- Represents a customer's request for a provider's service
- Carries a snapshot of service, provider and price details taken at creation
- Tracks status transitions and the provider response timestamp
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, Float, ForeignKey, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from servicewala.database.base import Base
from servicewala.database.enums import BookingStatus, enum_values


# MODEL: Booking
class Booking(Base):
    __tablename__ = "bookings"

    # Basic Identifiers & Foreign Keys
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the booking",
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.user_id", name="bookings_user_id_fkey"),
        nullable=False,
        comment="Customer who requested the booking",
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("services.service_id", name="bookings_service_id_fkey"),
        nullable=False,
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.user_id", name="bookings_provider_id_fkey"),
        nullable=False,
    )

    # Snapshot copied from the service at creation time
    service_name: Mapped[str] = mapped_column(String(150), nullable=False)
    provider_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    image: Mapped[str | None] = mapped_column(String, nullable=True)
    location: Mapped[str] = mapped_column(String, nullable=False)

    # Request details
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    booking_time: Mapped[str] = mapped_column(String(20), nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_duration: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Status & Timestamps
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=enum_values),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
