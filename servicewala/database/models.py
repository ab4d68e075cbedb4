"""
servicewala/database/models.py

Core SQLAlchemy ORM Models

Defines:
- User: local user record reconciled with an external identity

Importing this module registers every feature model on Base.metadata:
- Category
- Service (services offered by providers)
- Booking
- Review
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Float, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from servicewala.database.base import Base, StringList
from servicewala.database.enums import UserRole, enum_values
from servicewala.category.models import Category
from servicewala.service.models import Service
from servicewala.booking.models import Booking
from servicewala.review.models import Review

__all__ = ["User", "Category", "Service", "Booking", "Review"]

# ---------------------------------------------------
# User Model: Platform User
# ---------------------------------------------------


class User(Base):
    __tablename__ = "users"

    # -------------------------------------
    # Fields
    # -------------------------------------
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier for the user",
    )
    auth_uid: Mapped[str | None] = mapped_column(
        String(128),
        unique=True,
        nullable=True,
        comment="Stable identifier issued by the external identity provider",
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False, comment="Display name")
    email: Mapped[str] = mapped_column(String(255), nullable=False, comment="User's email address")
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    avatar: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=enum_values),
        nullable=False,
        default=UserRole.CLIENT,
        comment="User role (client, provider), fixed at signup",
    )
    registered: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        comment="Whether the role was chosen explicitly (signup or provider listing)",
    )
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    verified: Mapped[bool] = mapped_column(
        Boolean, default=False, comment="Whether the user's email is verified"
    )

    # Provider-only attributes
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    experience_years: Mapped[int] = mapped_column(Integer, default=0)
    specialties: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    skills: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)
    completed_jobs: Mapped[int] = mapped_column(Integer, default=0)
    rating: Mapped[float] = mapped_column(Float, default=0.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        comment="Timestamp when the user was created",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        comment="Timestamp when the user was last updated",
    )

    # -------------------------------------
    # Relationships
    # -------------------------------------

    # One-to-Many: A provider can offer multiple services
    services: Mapped[list["Service"]] = relationship(
        "Service",
        back_populates="provider",
    )
