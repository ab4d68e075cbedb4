"""
servicewala/service/services.py

Service Listing Service Layer
Manages reads, creation and updates of service listings.

- Store-level filters (category, city, state, free text) run in SQL
- The unfiltered catalog is served through ServiceCatalogCache
- Provider and category references are resolved before any insert
- Writes publish `services.changed` so cached catalogs are dropped
"""

import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID

from fastapi import status
from sqlalchemy import Select, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from servicewala.category.models import Category
from servicewala.category.services import CategoryService
from servicewala.core.events import SERVICES_CHANGED, EventBus
from servicewala.core.exceptions import APIError, ReferenceResolutionError
from servicewala.database.enums import UserRole
from servicewala.database.models import Service, User
from servicewala.database.rows import SERVICE_MAP, USER_MAP, from_storage_row, to_storage_row
from servicewala.database.seed import placeholder_catalog
from servicewala.service.cache import ServiceCatalogCache
from servicewala.service.filters import apply_filters, sort_services
from servicewala.service.schemas import (
    ServiceCreate,
    ServiceFilters,
    ServiceQuery,
    ServiceRead,
    ServiceUpdate,
    SortOption,
)
from servicewala.user.schemas import ProviderSummary, UserRead, UserUpsert
from servicewala.user.services import UserService

logger = logging.getLogger(__name__)


# ---------------------------------------------------
# Row Helpers
# ---------------------------------------------------
def _read(service: Service) -> ServiceRead:
    """Builds the view model, joining category name and provider summary."""
    provider = None
    if service.provider is not None:
        provider = ProviderSummary.from_user(from_storage_row(USER_MAP, UserRead, service.provider))
    return from_storage_row(
        SERVICE_MAP,
        ServiceRead,
        service,
        category=service.category.name if service.category else "",
        provider=provider,
    )


def _same_user(a: UserRead, b: UserRead) -> bool:
    return (a.id is not None and a.id == b.id) or (
        a.auth_uid is not None and a.auth_uid == b.auth_uid
    )


def _with_relations(stmt: Select) -> Select:
    return stmt.options(
        selectinload(Service.provider), selectinload(Service.category)
    ).execution_options(populate_existing=True)


# ---------------------------------------------------
# ServiceListingService
# ---------------------------------------------------
class ServiceListingService:
    """Handles service listing reads, creation and update."""

    def __init__(self, db: AsyncSession, events: EventBus | None = None) -> None:
        self.db = db
        self.events = events

    async def _publish_change(self, service_id: UUID, action: str) -> None:
        if self.events is not None:
            await self.events.publish(
                SERVICES_CHANGED, {"service_id": str(service_id), "action": action}
            )

    # ---------------------------------------------------
    # Reads
    # ---------------------------------------------------
    async def get_all(self, query: ServiceQuery | None = None) -> list[ServiceRead]:
        """Active services, newest first, narrowed by the store-level filters."""
        stmt = select(Service).filter(Service.is_active.is_(True))

        if query is not None:
            if query.category:
                stmt = stmt.join(Service.category).filter(Category.name == query.category)
            if query.city:
                stmt = stmt.filter(Service.city == query.city)
            if query.state:
                stmt = stmt.filter(Service.state == query.state)
            if query.query:
                pattern = f"%{query.query}%"
                stmt = stmt.filter(
                    or_(Service.title.ilike(pattern), Service.description.ilike(pattern))
                )

        stmt = _with_relations(stmt.order_by(Service.created_at.desc()))
        result = await self.db.execute(stmt)
        return [_read(s) for s in result.scalars().all()]

    async def get_by_id(self, service_id: UUID) -> ServiceRead | None:
        result = await self.db.execute(
            _with_relations(select(Service).filter(Service.service_id == service_id))
        )
        service = result.scalars().first()
        return _read(service) if service else None

    async def get_by_provider(self, provider_id: UUID) -> list[ServiceRead]:
        """All services of a provider, including inactive ones, newest first."""
        result = await self.db.execute(
            _with_relations(
                select(Service)
                .filter(Service.provider_id == provider_id)
                .order_by(Service.created_at.desc())
            )
        )
        return [_read(s) for s in result.scalars().all()]

    async def browse(
        self,
        cache: ServiceCatalogCache,
        query: ServiceQuery,
        filters: ServiceFilters,
        sort: SortOption | None = None,
        fallback_enabled: bool = False,
    ) -> list[ServiceRead]:
        """
        Catalog listing: store filters (or the cached catalog when none are set),
        then in-memory filters, then sorting. Falls back to the placeholder
        catalog when the unfiltered catalog comes back empty.

        Raises:
            ValueError: malformed price range.
        """
        if query.is_empty():
            services = await cache.get()
            if not services and fallback_enabled:
                logger.warning("[SERVICE] Live catalog empty or unreachable, using placeholders")
                services = placeholder_catalog()
        else:
            try:
                services = await self.get_all(query)
            except SQLAlchemyError as e:
                logger.error(f"[SERVICE] Filtered catalog query failed: {e}")
                services = []

        return sort_services(apply_filters(services, filters), sort)

    # ---------------------------------------------------
    # Reference Resolution
    # ---------------------------------------------------
    async def _resolve_provider(self, reference: str | None, acting: UserRead | None) -> UserRead:
        """
        Resolves a provider reference in order: external identity id, local
        user id, then a provider record for the acting identity when the
        reference is that identity's own id. That record is created, or
        promoted when it was stored by background sync without a chosen role.
        """
        users = UserService(self.db)

        if reference is None:
            if acting is None:
                raise ReferenceResolutionError("provider", None, "is missing")
            reference = acting.auth_uid or str(acting.id)

        user = await users.get_by_auth_uid(reference)
        if user is None:
            try:
                user = await users.get_by_id(UUID(reference))
            except ValueError:
                user = None

        unclaimed = user is None or (user.role != UserRole.PROVIDER and not user.registered)
        if unclaimed and acting is not None and acting.auth_uid == reference:
            logger.info(f"[SERVICE] Storing provider record for identity {reference}")
            user = await users.upsert(
                UserUpsert(
                    auth_uid=reference,
                    name=acting.name,
                    email=acting.email,
                    avatar=acting.avatar,
                    verified=acting.verified,
                    role=UserRole.PROVIDER,
                )
            )

        if user is None or user.id is None:
            raise ReferenceResolutionError("provider", reference)
        if user.role != UserRole.PROVIDER:
            raise ReferenceResolutionError("provider", reference, "is not a provider")
        return user

    async def _verify_references(self, provider_id: UUID, category_id: UUID) -> None:
        if await self.db.get(User, provider_id) is None:
            raise ReferenceResolutionError("provider", provider_id, "does not exist")
        if await self.db.get(Category, category_id) is None:
            raise ReferenceResolutionError("category", category_id, "does not exist")

    # ---------------------------------------------------
    # Writes
    # ---------------------------------------------------
    async def create(self, data: ServiceCreate, acting: UserRead | None = None) -> ServiceRead:
        """
        Create a service listing after resolving its provider and category.

        Raises:
            ReferenceResolutionError: provider or category cannot be resolved.
            APIError: 403 when the acting user lists under another provider.
        """
        provider = await self._resolve_provider(data.provider_id, acting)
        if acting is not None and not _same_user(provider, acting):
            logger.warning(f"[SERVICE] {acting.auth_uid} tried to list under provider {provider.id}")
            raise APIError(
                status.HTTP_403_FORBIDDEN, "Services can only be listed under your own account"
            )
        provider_id = provider.id
        category_id = await CategoryService(self.db).resolve_reference(data.category_id)
        await self._verify_references(provider_id, category_id)

        fields: dict[str, Any] = data.model_dump(exclude={"provider_id", "category_id"})
        fields.update(provider_id=provider_id, category_id=category_id)
        service = Service(**to_storage_row(SERVICE_MAP, fields))
        self.db.add(service)

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[SERVICE ERROR] Failed to create service: {e}", exc_info=True)
            raise

        logger.info(f"[SERVICE] Created service {service.service_id} for provider {provider_id}")
        await self._publish_change(service.service_id, "created")
        return await self.get_by_id(service.service_id)

    async def update(self, service_id: UUID, data: ServiceUpdate) -> ServiceRead | None:
        """Applies the set fields; returns None when the service does not exist."""
        service = await self.db.get(Service, service_id)
        if service is None:
            return None

        for column, value in to_storage_row(SERVICE_MAP, data, exclude_unset=True).items():
            setattr(service, column, value)

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[SERVICE ERROR] Failed to update service {service_id}: {e}")
            raise

        logger.info(f"[SERVICE] Updated service {service_id}")
        await self._publish_change(service_id, "updated")
        return await self.get_by_id(service_id)


# ---------------------------------------------------
# Catalog Cache Factory
# ---------------------------------------------------
def build_catalog_cache(
    session_factory: Callable[[], AsyncSession],
    events: EventBus,
    ttl_seconds: float,
    redis_client: Any = None,
    redis_key: str = "cache:servicewala:catalog",
) -> ServiceCatalogCache:
    """Creates the catalog cache backed by a fresh session per fetch and subscribes it to changes."""

    async def load_catalog() -> list[ServiceRead]:
        async with session_factory() as db:
            return await ServiceListingService(db).get_all()

    cache = ServiceCatalogCache(
        load_catalog, ttl_seconds=ttl_seconds, redis_client=redis_client, redis_key=redis_key
    )
    cache.subscribe(events)
    return cache
