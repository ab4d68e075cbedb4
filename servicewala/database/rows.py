"""
servicewala/database/rows.py

Row Transformation

Single place where storage column names are mapped to application field
names and back. Every read goes through `from_storage_row`, every write
through `to_storage_row`, so the two directions stay symmetric:

    to_storage_row(m, from_storage_row(m, Schema, row)) == row

Reads are validated by the target pydantic schema and fail loudly on a
missing column instead of producing half-empty view models.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import inspect as sa_inspect

from servicewala.core.exceptions import RowShapeError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass(frozen=True)
class EntityMap:
    """Column-to-field map of one storage collection."""

    name: str
    columns: dict[str, str]
    view_only: frozenset[str] = field(default_factory=frozenset)

    @property
    def fields(self) -> dict[str, str]:
        """Field-to-column map (inverse of `columns`)."""
        return {app_field: column for column, app_field in self.columns.items()}


# ---------------------------------------------------
# Entity Maps
# ---------------------------------------------------
USER_MAP = EntityMap(
    name="users",
    columns={
        "user_id": "id",
        "auth_uid": "auth_uid",
        "name": "name",
        "email": "email",
        "phone": "phone",
        "avatar": "avatar",
        "role": "role",
        "registered": "registered",
        "location": "location",
        "city": "city",
        "state": "state",
        "verified": "verified",
        "bio": "bio",
        "experience_years": "years_experience",
        "specialties": "specialties",
        "skills": "skills",
        "completed_jobs": "completed_jobs",
        "rating": "rating",
        "created_at": "joined_at",
        "updated_at": "updated_at",
    },
    view_only=frozenset({"is_fallback"}),
)

CATEGORY_MAP = EntityMap(
    name="categories",
    columns={
        "category_id": "id",
        "name": "name",
        "description": "description",
        "icon": "icon",
        "is_active": "is_active",
        "created_at": "created_at",
    },
)

SERVICE_MAP = EntityMap(
    name="services",
    columns={
        "service_id": "id",
        "provider_id": "provider_id",
        "category_id": "category_id",
        "title": "title",
        "description": "description",
        "price": "price",
        "price_type": "price_type",
        "duration": "duration",
        "images": "images",
        "availability": "availability",
        "location": "location",
        "city": "city",
        "state": "state",
        "tags": "tags",
        "rating": "rating",
        "review_count": "review_count",
        "is_active": "is_active",
        "created_at": "created_at",
        "updated_at": "updated_at",
    },
    view_only=frozenset({"category", "provider"}),
)

BOOKING_MAP = EntityMap(
    name="bookings",
    columns={
        "booking_id": "id",
        "user_id": "user_id",
        "service_id": "service_id",
        "provider_id": "provider_id",
        "service_name": "service_name",
        "provider_name": "provider_name",
        "customer_name": "customer_name",
        "price": "price",
        "image": "image",
        "location": "location",
        "booking_date": "date",
        "booking_time": "time",
        "special_instructions": "special_instructions",
        "estimated_duration": "estimated_duration",
        "status": "status",
        "requested_at": "requested_at",
        "responded_at": "responded_at",
        "created_at": "created_at",
        "updated_at": "updated_at",
    },
    view_only=frozenset({"is_synthetic"}),
)

REVIEW_MAP = EntityMap(
    name="reviews",
    columns={
        "review_id": "id",
        "user_id": "user_id",
        "provider_id": "provider_id",
        "service_id": "service_id",
        "booking_id": "booking_id",
        "rating": "rating",
        "comment": "comment",
        "user_name": "user_name",
        "user_avatar": "user_avatar",
        "verified": "verified",
        "created_at": "date",
    },
)


# ---------------------------------------------------
# Transformations
# ---------------------------------------------------
def row_from_orm(obj: Any) -> dict[str, Any]:
    """Extracts the column values of an ORM instance as a storage row."""
    return {attr.key: getattr(obj, attr.key) for attr in sa_inspect(obj).mapper.column_attrs}


def from_storage_row(
    entity: EntityMap, schema: type[SchemaT], row: Mapping[str, Any] | Any, **extra: Any
) -> SchemaT:
    """
    Builds a view model from a storage row (a mapping or an ORM instance).
    `extra` carries view-only values such as joined names.
    """
    if not isinstance(row, Mapping):
        row = row_from_orm(row)

    missing = [column for column in entity.columns if column not in row]
    if missing:
        raise RowShapeError(f"{entity.name} row is missing columns: {', '.join(missing)}")

    data = {app_field: row[column] for column, app_field in entity.columns.items()}
    data.update(extra)
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise RowShapeError(f"{entity.name} row failed validation: {e}") from e


def to_storage_row(
    entity: EntityMap, data: BaseModel | Mapping[str, Any], *, exclude_unset: bool = False
) -> dict[str, Any]:
    """
    Maps application fields back to storage columns.
    View-only fields are dropped; unknown fields are rejected.
    """
    if isinstance(data, BaseModel):
        values = data.model_dump(exclude_unset=exclude_unset)
    else:
        values = dict(data)

    reverse = entity.fields
    unknown = [key for key in values if key not in reverse and key not in entity.view_only]
    if unknown:
        raise RowShapeError(f"{entity.name} has no columns for fields: {', '.join(unknown)}")

    return {reverse[key]: value for key, value in values.items() if key in reverse}
