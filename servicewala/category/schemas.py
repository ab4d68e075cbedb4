"""
category/schemas.py

Category Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from servicewala.core.schemas import CamelModel


class CategoryRead(CamelModel):
    """Stored category, or a bundled default identified by its `default-` reference."""

    id: UUID | str
    name: str
    description: str | None = None
    icon: str | None = None
    is_active: bool = True
    created_at: datetime | None = None


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    icon: str | None = Field(None, max_length=16)
