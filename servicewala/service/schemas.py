"""
servicewala/service/schemas.py

Service Schemas
Defines Pydantic schemas for:
- Creating a service (provider and category given as references)
- Updating a service
- Reading a service (response model)
- Store-level and in-memory catalog filters
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field, field_validator

from servicewala.core.schemas import CamelModel
from servicewala.database.enums import PriceType
from servicewala.user.schemas import ProviderSummary

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _dedupe(values: list[str]) -> list[str]:
    """Strips entries and drops blanks and repeats, keeping first-seen order."""
    seen: list[str] = []
    for value in values:
        item = value.strip()
        if item and item not in seen:
            seen.append(item)
    return seen


def _normalize_weekdays(values: list[str]) -> list[str]:
    days = []
    for value in values:
        day = value.strip().capitalize()
        if day and day not in WEEKDAYS:
            raise ValueError(f"'{value}' is not a weekday")
        days.append(day)
    return _dedupe(days)


# ---------------------------------------------------
# Base Schema for Service Fields
# ---------------------------------------------------
class ServiceBase(CamelModel):
    """Base schema containing shared fields for service creation."""

    title: str = Field(..., min_length=1, max_length=150, description="Title of the service")
    description: str = Field(..., min_length=1, description="Detailed description of the service")
    price: float = Field(..., gt=0, description="Price in local currency")
    price_type: PriceType = Field(PriceType.FIXED, description="fixed or hourly")
    duration: str = Field(..., min_length=1, max_length=100, description="e.g. '2 hours'")
    location: str = Field(..., min_length=1, description="Street or area served")
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    images: list[str] = Field(default_factory=list)
    availability: list[str] = Field(..., min_length=1, description="Weekdays offered")
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "description", "duration", "location", "city", "state")
    @classmethod
    def _strip_required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("images", "tags")
    @classmethod
    def _dedupe_lists(cls, value: list[str]) -> list[str]:
        return _dedupe(value)

    @field_validator("availability")
    @classmethod
    def _check_weekdays(cls, value: list[str]) -> list[str]:
        days = _normalize_weekdays(value)
        if not days:
            raise ValueError("select at least one available day")
        return days


# ---------------------------------------------------
# Create Service Schema
# ---------------------------------------------------
class ServiceCreate(ServiceBase):
    """
    Schema used to create a new service listing.

    `provider_id` may be the provider's external identity id or local user id;
    it defaults to the caller. `category_id` is a stored category id or a
    `default-` prefixed reference to a bundled default category.
    """

    provider_id: str | None = Field(None, description="External or local provider id")
    category_id: str = Field(..., min_length=1, description="Category id or default-* reference")


# ---------------------------------------------------
# Update Service Schema
# ---------------------------------------------------
class ServiceUpdate(CamelModel):
    """Schema used to update an existing service listing."""

    title: str | None = Field(None, min_length=1, max_length=150)
    description: str | None = Field(None, min_length=1)
    price: float | None = Field(None, gt=0)
    price_type: PriceType | None = None
    duration: str | None = Field(None, min_length=1, max_length=100)
    location: str | None = Field(None, min_length=1)
    city: str | None = Field(None, min_length=1, max_length=100)
    state: str | None = Field(None, min_length=1, max_length=100)
    images: list[str] | None = None
    availability: list[str] | None = None
    tags: list[str] | None = None
    is_active: bool | None = None

    @field_validator("images", "tags")
    @classmethod
    def _dedupe_lists(cls, value: list[str] | None) -> list[str] | None:
        return _dedupe(value) if value is not None else None

    @field_validator("availability")
    @classmethod
    def _check_weekdays(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        days = _normalize_weekdays(value)
        if not days:
            raise ValueError("select at least one available day")
        return days


# ---------------------------------------------------
# Read (Response) Schema
# ---------------------------------------------------
class ServiceRead(CamelModel):
    """Schema returned when reading a service listing."""

    id: UUID = Field(..., description="Unique identifier for the service")
    provider_id: UUID
    category_id: UUID
    title: str
    description: str
    price: float
    price_type: PriceType
    duration: str | None = None
    images: list[str] | None = None
    availability: list[str] | None = None
    location: str
    city: str | None = None
    state: str | None = None
    tags: list[str] | None = None
    rating: float = 0.0
    review_count: int = 0
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # View-only, joined from categories/users
    category: str = Field("", description="Category name")
    provider: ProviderSummary | None = Field(None, description="Provider offering the service")


# ---------------------------------------------------
# Query Schemas
# ---------------------------------------------------
class ServiceQuery(CamelModel):
    """Filters evaluated by the database (equality and ILIKE)."""

    category: str | None = None
    city: str | None = None
    state: str | None = None
    query: str | None = None

    def is_empty(self) -> bool:
        return not any((self.category, self.city, self.state, self.query))


class SortOption(str, Enum):
    RATING = "rating"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    REVIEWS = "reviews"


class ServiceFilters(CamelModel):
    """Filters evaluated in memory over a loaded catalog."""

    query: str | None = None
    category: str | None = None
    location: str | None = None
    city: str | None = None
    state: str | None = None
    min_rating: float | None = Field(None, ge=0, le=5)
    price_range: str | None = Field(None, description="'min-max' or 'min'")
