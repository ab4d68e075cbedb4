"""
category/routes.py

Category listing. Falls back to the bundled default categories when none
are stored or the store is unreachable.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.category.schemas import CategoryRead
from servicewala.category.services import CategoryService, default_categories
from servicewala.core.limiter import limiter
from servicewala.database.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["Categories"])

DBDep = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "",
    response_model=list[CategoryRead],
    status_code=status.HTTP_200_OK,
    summary="List Categories",
)
@limiter.limit("60/minute")
async def list_categories(request: Request, db: DBDep) -> list[CategoryRead]:
    try:
        categories = await CategoryService(db).get_all()
    except SQLAlchemyError as e:
        logger.error(f"[CATEGORY] Listing failed, serving defaults: {e}")
        categories = []
    return categories or default_categories()
