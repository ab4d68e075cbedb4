"""
servicewala/review/schemas.py

Review Schemas
Defines Pydantic schemas for:
- Creating a review (Authenticated user)
- Reading a review (response model)
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from servicewala.core.schemas import CamelModel


# ---------------------------------------------------
# Create Review Schema
# ---------------------------------------------------
class ReviewCreate(CamelModel):
    """
    Schema used when submitting a review. The provider is taken from the
    service when only `service_id` is given.
    """

    provider_id: UUID | None = Field(None, description="Provider being reviewed")
    service_id: UUID | None = Field(None, description="Reviewed service")
    booking_id: UUID | None = Field(None, description="Booking the review belongs to")
    rating: int = Field(..., ge=1, le=5, description="Star rating from 1 to 5")
    comment: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _needs_target(self) -> "ReviewCreate":
        if self.provider_id is None and self.service_id is None:
            raise ValueError("either providerId or serviceId is required")
        return self


# ---------------------------------------------------
# Read (Response) Schema
# ---------------------------------------------------
class ReviewRead(CamelModel):
    """Schema returned when reading a review."""

    id: UUID
    user_id: UUID
    provider_id: UUID
    service_id: UUID | None = None
    booking_id: UUID | None = None
    rating: int
    comment: str | None = None
    user_name: str
    user_avatar: str | None = None
    verified: bool = False
    date: datetime | None = Field(None, description="Timestamp when the review was created")
