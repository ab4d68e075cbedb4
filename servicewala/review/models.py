"""
review/models.py

Defines the Review model for storing service feedback.
- Each review is linked to a user, a provider and optionally a service and booking.
- Supports star ratings, optional comment, and a reviewer name/avatar snapshot.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import CheckConstraint

from servicewala.database.base import Base


class Review(Base):
    """
    Review submitted by a customer about a provider's service.
    Includes a star rating (1-5), optional comment and a verified flag.
    """

    __tablename__ = "reviews"
    __table_args__ = (CheckConstraint("rating >= 1 AND rating <= 5", name="rating_range"),)

    review_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the review",
    )

    # Foreign Keys
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.user_id", name="reviews_user_id_fkey"),
        nullable=False,
        comment="User who wrote the review",
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.user_id", name="reviews_provider_id_fkey"),
        nullable=False,
        comment="Provider being reviewed",
    )
    service_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("services.service_id", name="reviews_service_id_fkey"), nullable=True
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("bookings.booking_id", name="reviews_booking_id_fkey"), nullable=True
    )

    # Review content
    rating: Mapped[int] = mapped_column(Integer, nullable=False, comment="Star rating from 1 to 5")
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_name: Mapped[str] = mapped_column(String(200), nullable=False)
    user_avatar: Mapped[str | None] = mapped_column(String, nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        comment="Timestamp when the review was created",
    )
