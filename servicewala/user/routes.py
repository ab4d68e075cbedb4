"""
user/routes.py

User Routes
- Read and update the current user's profile (Authenticated)
- Provider directory and public profile of any user
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.core.dependencies import CurrentUserDep, PersistedUserDep
from servicewala.core.exceptions import APIError
from servicewala.core.limiter import limiter
from servicewala.database.session import get_db
from servicewala.user.schemas import UserRead, UserUpdate
from servicewala.user.services import UserService

router = APIRouter(prefix="/users", tags=["Users"])

DBDep = Annotated[AsyncSession, Depends(get_db)]


# ----------------------------------------------------
# Authenticated Profile Endpoints
# ----------------------------------------------------
@router.get(
    "/me",
    response_model=UserRead,
    status_code=status.HTTP_200_OK,
    summary="My Profile",
)
@limiter.limit("30/minute")
async def get_my_profile(request: Request, user: CurrentUserDep) -> UserRead:
    return user


@router.patch(
    "/me",
    response_model=UserRead,
    status_code=status.HTTP_200_OK,
    summary="Update My Profile",
    description="Update profile fields. The role cannot be changed.",
)
@limiter.limit("10/minute")
async def update_my_profile(
    request: Request,
    data: UserUpdate,
    db: DBDep,
    user: PersistedUserDep,
) -> UserRead:
    updated = await UserService(db).update(user.id, data)
    if updated is None:
        raise APIError(status.HTTP_404_NOT_FOUND, "User not found")
    return updated


# ----------------------------------------------------
# Public Endpoints
# ----------------------------------------------------
@router.get(
    "/providers",
    response_model=list[UserRead],
    status_code=status.HTTP_200_OK,
    summary="List Providers",
    description="Service providers, best rated first.",
)
@limiter.limit("30/minute")
async def list_providers(request: Request, db: DBDep) -> list[UserRead]:
    return await UserService(db).get_providers()


@router.get(
    "/{user_id}",
    response_model=UserRead,
    status_code=status.HTTP_200_OK,
    summary="Get User",
)
@limiter.limit("30/minute")
async def get_user(request: Request, user_id: UUID, db: DBDep) -> UserRead:
    user = await UserService(db).get_by_id(user_id)
    if user is None:
        raise APIError(status.HTTP_404_NOT_FOUND, "User not found")
    return user
