"""
servicewala/user/schemas.py

User Schemas
Defines Pydantic schemas for:
- Reading a full user (own profile)
- Public provider summary embedded in service listings
- Upserting a user from an identity assertion
- Profile updates (role is not updatable)
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from servicewala.core.schemas import CamelModel
from servicewala.database.enums import UserRole


# ---------------------------------------------------
# Read (Response) Schemas
# ---------------------------------------------------
class UserRead(CamelModel):
    """
    Application view of a user. `id` is None and `is_fallback` is True when
    the user was synthesized from the identity assertion alone.
    """

    id: UUID | None = Field(None, description="Local user id")
    auth_uid: str | None = Field(None, description="External identity provider id")
    name: str
    email: str
    phone: str | None = None
    avatar: str | None = None
    role: UserRole = UserRole.CLIENT
    registered: bool = Field(False, description="Role was chosen explicitly")
    location: str | None = None
    city: str | None = None
    state: str | None = None
    verified: bool = False
    bio: str | None = None
    years_experience: int | None = 0
    specialties: list[str] | None = None
    skills: list[str] | None = None
    completed_jobs: int | None = 0
    rating: float | None = 0.0
    joined_at: datetime | None = None
    updated_at: datetime | None = None
    is_fallback: bool = Field(False, description="Synthesized without a stored record")


class ProviderSummary(CamelModel):
    """Public provider details shown next to a service."""

    id: UUID
    name: str
    rating: float = 0.0
    completed_jobs: int = 0
    bio: str = ""
    years_experience: int = 0
    verified: bool = False
    specialties: list[str] = Field(default_factory=list)
    avatar: str = ""
    location: str = ""

    @classmethod
    def from_user(cls, user: UserRead) -> "ProviderSummary":
        return cls(
            id=user.id,
            name=user.name,
            rating=user.rating or 0.0,
            completed_jobs=user.completed_jobs or 0,
            bio=user.bio or "",
            years_experience=user.years_experience or 0,
            verified=user.verified,
            specialties=user.specialties or [],
            avatar=user.avatar or "",
            location=user.location or "",
        )


# ---------------------------------------------------
# Write Schemas
# ---------------------------------------------------
class UserUpsert(CamelModel):
    """
    Create-or-update payload keyed by `auth_uid`. `role` is applied on insert
    only; a missing `name` keeps the stored one.
    """

    auth_uid: str
    name: str | None = None
    email: str
    avatar: str | None = None
    verified: bool = False
    role: UserRole | None = None


class UserUpdate(CamelModel):
    """Profile fields a user may change. Role is intentionally absent."""

    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    avatar: str | None = None
    location: str | None = None
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    bio: str | None = None
    years_experience: int | None = Field(None, ge=0)
    specialties: list[str] | None = None
    skills: list[str] | None = None
