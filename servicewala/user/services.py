"""
servicewala/user/services.py

User Service Layer
Reads and writes local user records. Records are keyed by the external
identity id (`auth_uid`) for identity reconciliation and by the local
`user_id` everywhere else.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.database.enums import UserRole
from servicewala.database.models import User
from servicewala.database.rows import USER_MAP, from_storage_row, to_storage_row
from servicewala.user.schemas import UserRead, UserUpdate, UserUpsert

logger = logging.getLogger(__name__)


def _read(user: User) -> UserRead:
    return from_storage_row(USER_MAP, UserRead, user)


class UserService:
    """Lookup, upsert and profile update of local users."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ---------------------------------------------------
    # Lookups
    # ---------------------------------------------------
    async def _get_by_auth_uid(self, auth_uid: str) -> User | None:
        result = await self.db.execute(select(User).filter(User.auth_uid == auth_uid))
        return result.scalars().first()

    async def get_by_auth_uid(self, auth_uid: str) -> UserRead | None:
        user = await self._get_by_auth_uid(auth_uid)
        return _read(user) if user else None

    async def get_by_id(self, user_id: UUID) -> UserRead | None:
        user = await self.db.get(User, user_id)
        return _read(user) if user else None

    async def get_providers(self) -> list[UserRead]:
        """Returns provider users, best rated first."""
        result = await self.db.execute(
            select(User).filter(User.role == UserRole.PROVIDER).order_by(User.rating.desc())
        )
        return [_read(user) for user in result.scalars().all()]

    # ---------------------------------------------------
    # Writes
    # ---------------------------------------------------
    async def upsert(self, data: UserUpsert) -> UserRead:
        """
        Creates the user for `data.auth_uid` or refreshes its identity fields.

        A role given in `data` is stored when the record is created, or when
        the record was created without an explicit role (background identity
        sync). A registered role is never changed here.
        """
        user = await self._get_by_auth_uid(data.auth_uid)
        if user is None:
            logger.info(f"[USER] Creating user for identity {data.auth_uid}")
            created = User(
                auth_uid=data.auth_uid,
                name=data.name or data.email.split("@", 1)[0],
                email=data.email,
                avatar=data.avatar,
                verified=data.verified,
                role=data.role or UserRole.CLIENT,
                registered=data.role is not None,
            )
            self.db.add(created)
            try:
                await self.db.commit()
            except IntegrityError:
                # Another writer created the same identity first
                await self.db.rollback()
                logger.info(f"[USER] Identity {data.auth_uid} created concurrently, refreshing")
                user = await self._get_by_auth_uid(data.auth_uid)
                if user is None:
                    raise
            else:
                await self.db.refresh(created)
                return _read(created)

        logger.info(f"[USER] Refreshing identity fields of user {user.user_id}")
        if data.name:
            user.name = data.name
        user.email = data.email
        user.verified = data.verified
        if data.avatar:
            user.avatar = data.avatar
        if data.role is not None and not user.registered:
            user.role = data.role
            user.registered = True

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(user)
        return _read(user)

    async def update(self, user_id: UUID, data: UserUpdate) -> UserRead | None:
        """Applies the set profile fields; returns None when the user does not exist."""
        user = await self.db.get(User, user_id)
        if user is None:
            return None

        for column, value in to_storage_row(USER_MAP, data, exclude_unset=True).items():
            setattr(user, column, value)

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(user)
        logger.info(f"[USER] Updated profile of user {user_id}")
        return _read(user)
