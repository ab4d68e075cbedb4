"""
servicewala/service/routes.py

Service Routes
Defines API routes for service listings:
- Public catalog with filters and sorting
- Public service detail and provider service lists
- Create and update services (authenticated provider)
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.auth.services import IdentityBridge
from servicewala.core.config import settings
from servicewala.core.dependencies import (
    CurrentUserDep,
    ProviderDep,
    get_catalog_cache,
    get_events,
    get_identity_bridge,
)
from servicewala.core.events import EventBus
from servicewala.core.exceptions import APIError
from servicewala.core.limiter import limiter
from servicewala.database.session import get_db
from servicewala.service.cache import ServiceCatalogCache
from servicewala.service.schemas import (
    ServiceCreate,
    ServiceFilters,
    ServiceQuery,
    ServiceRead,
    ServiceUpdate,
    SortOption,
)
from servicewala.service.services import ServiceListingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])

DBDep = Annotated[AsyncSession, Depends(get_db)]
CacheDep = Annotated[ServiceCatalogCache, Depends(get_catalog_cache)]
EventsDep = Annotated[EventBus, Depends(get_events)]
BridgeDep = Annotated[IdentityBridge, Depends(get_identity_bridge)]


# ----------------------------------------------------
# Public Service Endpoints
# ----------------------------------------------------
@router.get(
    "",
    response_model=list[ServiceRead],
    status_code=status.HTTP_200_OK,
    summary="Browse Services",
    description="List active services. Category, city and state narrow the database query; every filter is then applied to the loaded services.",
)
@limiter.limit("60/minute")
async def browse_services(
    request: Request,
    db: DBDep,
    cache: CacheDep,
    query: str | None = Query(None, description="Free text over title, description, category and tags"),
    category: str | None = Query(None, description="Exact category name"),
    location: str | None = Query(None, description="Substring of location, city or state"),
    city: str | None = Query(None),
    state: str | None = Query(None),
    min_rating: float | None = Query(None, alias="minRating", ge=0, le=5),
    price_range: str | None = Query(None, alias="priceRange", description="'min-max' or 'min'"),
    sort: SortOption | None = Query(None),
) -> list[ServiceRead]:
    store_query = ServiceQuery(category=category, city=city, state=state)
    filters = ServiceFilters(
        query=query,
        category=category,
        location=location,
        city=city,
        state=state,
        min_rating=min_rating,
        price_range=price_range,
    )
    try:
        return await ServiceListingService(db).browse(
            cache,
            store_query,
            filters,
            sort,
            fallback_enabled=settings.CATALOG_FALLBACK_ENABLED,
        )
    except ValueError as e:
        raise APIError(status.HTTP_422_UNPROCESSABLE_ENTITY, str(e))


@router.get(
    "/provider/{provider_id}",
    response_model=list[ServiceRead],
    status_code=status.HTTP_200_OK,
    summary="Provider Services",
)
@limiter.limit("30/minute")
async def get_provider_services(request: Request, provider_id: UUID, db: DBDep) -> list[ServiceRead]:
    return await ServiceListingService(db).get_by_provider(provider_id)


@router.get(
    "/{service_id}",
    response_model=ServiceRead,
    status_code=status.HTTP_200_OK,
    summary="Get Service Detail",
)
@limiter.limit("60/minute")
async def get_service(request: Request, service_id: UUID, db: DBDep) -> ServiceRead:
    service = await ServiceListingService(db).get_by_id(service_id)
    if service is None:
        raise APIError(status.HTTP_404_NOT_FOUND, "Service not found")
    return service


# ----------------------------------------------------
# Authenticated Service Endpoints
# ----------------------------------------------------
@router.post(
    "",
    response_model=ServiceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create New Service",
    description="Create a service listing. The provider defaults to the caller; categories may be given as default-* references.",
)
@limiter.limit("10/minute")
async def create_service(
    request: Request,
    data: ServiceCreate,
    db: DBDep,
    events: EventsDep,
    bridge: BridgeDep,
    current_user: CurrentUserDep,
) -> ServiceRead:
    # The caller's record may still be written by identity sync
    await bridge.settle(current_user.auth_uid)
    return await ServiceListingService(db, events).create(data, acting=current_user)


@router.patch(
    "/{service_id}",
    response_model=ServiceRead,
    status_code=status.HTTP_200_OK,
    summary="Update Service",
    description="Update one of your own service listings.",
)
@limiter.limit("10/minute")
async def update_service(
    request: Request,
    service_id: UUID,
    data: ServiceUpdate,
    db: DBDep,
    events: EventsDep,
    current_user: ProviderDep,
) -> ServiceRead:
    services = ServiceListingService(db, events)
    existing = await services.get_by_id(service_id)
    if existing is None:
        raise APIError(status.HTTP_404_NOT_FOUND, "Service not found")
    if existing.provider_id != current_user.id:
        raise APIError(status.HTTP_403_FORBIDDEN, "You can only update your own services")

    updated = await services.update(service_id, data)
    if updated is None:
        raise APIError(status.HTTP_404_NOT_FOUND, "Service not found")
    return updated
