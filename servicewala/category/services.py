"""
category/services.py

Category lookups and reference resolution. A category reference is either a
stored category id or a `default-` reference to one of the bundled default
categories, which is created on first use.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.category.models import Category
from servicewala.category.schemas import CategoryCreate, CategoryRead
from servicewala.core.exceptions import ReferenceResolutionError
from servicewala.database.rows import CATEGORY_MAP, from_storage_row
from servicewala.database.seed import (
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_PREFIX,
    default_category_reference,
    find_default_category,
)

logger = logging.getLogger(__name__)


def _read(category: Category) -> CategoryRead:
    return from_storage_row(CATEGORY_MAP, CategoryRead, category)


def default_categories() -> list[CategoryRead]:
    """The bundled categories; their ids are `default-` references accepted on service creation."""
    return [
        CategoryRead(
            id=default_category_reference(index),
            name=category["name"],
            description=category["description"],
            icon=category["icon"],
        )
        for index, category in enumerate(DEFAULT_CATEGORIES)
    ]


class CategoryService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_all(self) -> list[CategoryRead]:
        """Active categories ordered by name."""
        result = await self.db.execute(
            select(Category).filter(Category.is_active.is_(True)).order_by(Category.name)
        )
        return [_read(c) for c in result.scalars().all()]

    async def get_by_id(self, category_id: UUID) -> CategoryRead | None:
        category = await self.db.get(Category, category_id)
        return _read(category) if category else None

    async def get_by_name(self, name: str) -> CategoryRead | None:
        result = await self.db.execute(select(Category).filter(Category.name == name))
        category = result.scalars().first()
        return _read(category) if category else None

    async def find_or_create(self, data: CategoryCreate) -> CategoryRead:
        """Returns the category with `data.name`, inserting it when missing."""
        existing = await self.get_by_name(data.name)
        if existing:
            return existing

        category = Category(name=data.name, description=data.description, icon=data.icon)
        self.db.add(category)
        try:
            await self.db.commit()
        except IntegrityError:
            # Created concurrently under the same unique name
            await self.db.rollback()
            existing = await self.get_by_name(data.name)
            if existing is None:
                raise
            return existing
        await self.db.refresh(category)
        logger.info(f"[CATEGORY] Created category '{data.name}'")
        return _read(category)

    async def resolve_reference(self, reference: str) -> UUID:
        """
        Resolves a category reference to the id of a stored category.

        Raises:
            ReferenceResolutionError: unknown default reference, malformed id
                or id with no stored category.
        """
        if reference.startswith(DEFAULT_CATEGORY_PREFIX):
            default = find_default_category(reference)
            if default is None:
                raise ReferenceResolutionError("category", reference, "is not a default category")
            category = await self.find_or_create(CategoryCreate(**default))
            return category.id

        try:
            category_id = UUID(reference)
        except ValueError:
            raise ReferenceResolutionError("category", reference, "is not a valid id")

        if await self.get_by_id(category_id) is None:
            raise ReferenceResolutionError("category", reference, "does not exist")
        return category_id
