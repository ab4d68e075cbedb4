"""
auth/services.py

Identity Bridge
Reconciles an external identity with the local user record.

- Reads never wait on a write and never fail: if the record is missing or
  the lookup fails, a client-role fallback user built from the identity
  is returned
- A background write-through creates or refreshes the record whenever it
  is missing or out of date; failures are logged only
- Registration is the one path that waits for the write, so the chosen
  role is either stored or reported as an error
"""

import asyncio
import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servicewala.auth.schemas import IdentityAssertion
from servicewala.core.exceptions import IdentitySyncError, RoleConflictError, RowShapeError
from servicewala.database.enums import UserRole
from servicewala.user.schemas import UserRead, UserUpsert
from servicewala.user.services import UserService

logger = logging.getLogger(__name__)

# Failures of the identity store that degrade to the fallback user
STORE_ERRORS = (SQLAlchemyError, OSError, RowShapeError)


def fallback_user(assertion: IdentityAssertion) -> UserRead:
    """Client-role user synthesized from the identity alone."""
    return UserRead(
        id=None,
        auth_uid=assertion.uid,
        name=assertion.display_name,
        email=assertion.email,
        avatar=assertion.avatar,
        role=UserRole.CLIENT,
        verified=assertion.email_verified,
        joined_at=assertion.signed_in_at,
        is_fallback=True,
    )


def _is_stale(user: UserRead, assertion: IdentityAssertion) -> bool:
    return (
        (assertion.name is not None and user.name != assertion.name)
        or user.email != assertion.email
        or user.verified != assertion.email_verified
    )


def _upsert_payload(
    assertion: IdentityAssertion, role: UserRole | None = None, name: str | None = None
) -> UserUpsert:
    return UserUpsert(
        auth_uid=assertion.uid,
        name=assertion.name or name,
        email=assertion.email,
        avatar=assertion.avatar,
        verified=assertion.email_verified,
        role=role,
    )


class IdentityBridge:
    """Maps identity assertions to local users. One instance per application."""

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self.session_factory = session_factory
        self._pending: dict[str, set[asyncio.Task[None]]] = {}

    async def reconcile(self, assertion: IdentityAssertion | None) -> UserRead | None:
        """Current user for an identity; None when signed out."""
        if assertion is None:
            return None

        stored: UserRead | None = None
        try:
            async with self.session_factory() as db:
                stored = await UserService(db).get_by_auth_uid(assertion.uid)
        except STORE_ERRORS as e:
            logger.warning(f"[IDENTITY] Lookup failed for {assertion.uid}, using fallback: {e}")

        if stored is None or _is_stale(stored, assertion):
            self._schedule_sync(assertion)

        if stored is None:
            return fallback_user(assertion)
        return stored

    async def register(
        self, assertion: IdentityAssertion, role: UserRole, name: str | None = None
    ) -> UserRead:
        """
        Signup: stores the user with the chosen role and waits for the write.
        A record created by background sync takes the chosen role; a record
        registered earlier keeps its role. `name` is used only when the
        identity carries no display name.

        Raises:
            IdentitySyncError: the record could not be written.
            RoleConflictError: the identity is already registered with another role.
        """
        await self.settle(assertion.uid)
        try:
            async with self.session_factory() as db:
                user = await UserService(db).upsert(_upsert_payload(assertion, role, name))
        except STORE_ERRORS as e:
            logger.error(f"[IDENTITY] Registration of {assertion.uid} failed: {e}", exc_info=True)
            raise IdentitySyncError()

        if user.role != role:
            logger.warning(
                f"[IDENTITY] {assertion.uid} asked for {role.value} but is registered as {user.role.value}"
            )
            raise RoleConflictError(user.role.value, role.value)
        logger.info(f"[IDENTITY] Registered {assertion.uid} as {user.role.value}")
        return user

    # ---------------------------------------------------
    # Background write-through
    # ---------------------------------------------------
    def _schedule_sync(self, assertion: IdentityAssertion) -> None:
        task = asyncio.create_task(self._sync(assertion))
        tasks = self._pending.setdefault(assertion.uid, set())
        tasks.add(task)
        task.add_done_callback(lambda t: self._forget(assertion.uid, t))

    def _forget(self, uid: str, task: asyncio.Task[None]) -> None:
        tasks = self._pending.get(uid)
        if tasks is not None:
            tasks.discard(task)
            if not tasks:
                del self._pending[uid]

    async def _sync(self, assertion: IdentityAssertion) -> None:
        try:
            async with self.session_factory() as db:
                await UserService(db).upsert(_upsert_payload(assertion))
            logger.info(f"[IDENTITY] Synced local record of {assertion.uid}")
        except STORE_ERRORS as e:
            logger.warning(f"[IDENTITY] Background sync of {assertion.uid} failed: {e}")

    async def settle(self, uid: str | None) -> None:
        """Waits for the write-throughs scheduled for one identity."""
        if uid is None:
            return
        while self._pending.get(uid):
            await asyncio.gather(*list(self._pending[uid]), return_exceptions=True)

    async def drain(self) -> None:
        """Waits for every scheduled write-through (shutdown and tests)."""
        while self._pending:
            tasks = [task for tasks in self._pending.values() for task in tasks]
            await asyncio.gather(*tasks, return_exceptions=True)
