"""
servicewala/service/models.py

Service Database Model
Defines the SQLAlchemy model for services offered by providers.
Each service is linked to a provider (User with provider role) and a category.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from servicewala.database.base import Base, StringList
from servicewala.database.enums import PriceType, enum_values

if TYPE_CHECKING:
    from servicewala.category.models import Category
    from servicewala.database.models import User


# ---------------------------------------------------
# Service Model
# ---------------------------------------------------


class Service(Base):
    """Represents a service listing created by a provider."""

    __tablename__ = "services"

    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the service",
    )

    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.user_id", name="services_provider_id_fkey", ondelete="CASCADE"),
        nullable=False,
        comment="Provider (user) offering this service",
    )

    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("categories.category_id", name="services_category_id_fkey"),
        nullable=False,
        comment="Category the service is listed under",
    )

    title: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    price_type: Mapped[PriceType] = mapped_column(
        Enum(PriceType, name="price_type", values_callable=enum_values),
        nullable=False,
        default=PriceType.FIXED,
    )
    duration: Mapped[str | None] = mapped_column(
        String(100), nullable=True, comment="Free-text duration, e.g. '2 hours'"
    )
    images: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    availability: Mapped[list[str] | None] = mapped_column(
        StringList, nullable=True, comment="Weekday names the service is offered on"
    )
    location: Mapped[str] = mapped_column(String, nullable=False)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    rating: Mapped[float] = mapped_column(Float, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        comment="Timestamp when the service was created",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        comment="Timestamp when the service was last updated",
    )

    # ---------------------------------------------------
    # Relationships
    # ---------------------------------------------------

    provider: Mapped["User"] = relationship(
        "User",
        back_populates="services",
        # Relationship: Many services can be offered by one provider
    )

    category: Mapped["Category"] = relationship("Category")
