"""
core/dependencies.py

Authentication and Authorization Dependencies

Provides identity and role-based access control for FastAPI routes:
- Verifies the identity token from the Bearer header
- Reconciles the identity with the local user through the IdentityBridge
- Restricts access to users with a stored record and a given role

Application singletons (event bus, catalog cache, identity bridge) are built
in main.py and read from `request.app.state`.
"""

import logging
from collections.abc import Callable, Coroutine
from typing import Annotated, Any

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from servicewala.auth.schemas import IdentityAssertion
from servicewala.auth.services import IdentityBridge
from servicewala.auth.tokens import decode_identity_token
from servicewala.core.events import EventBus
from servicewala.core.exceptions import APIError
from servicewala.database.enums import UserRole
from servicewala.service.cache import ServiceCatalogCache
from servicewala.user.schemas import UserRead

# ---------------------------------------------------
# Logger Configuration
# ---------------------------------------------------
logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------
# Application State
# ---------------------------------------------------
def get_identity_bridge(request: Request) -> IdentityBridge:
    return request.app.state.identity_bridge


def get_events(request: Request) -> EventBus:
    return request.app.state.events


def get_catalog_cache(request: Request) -> ServiceCatalogCache:
    return request.app.state.catalog_cache


# ---------------------------------------------------
# Identity
# ---------------------------------------------------
async def get_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
) -> IdentityAssertion | None:
    """
    Verified identity of the caller, or None when no token was sent.

    Raises:
        APIError: 401 when a token is present but invalid.
    """
    if credentials is None:
        return None
    try:
        return decode_identity_token(credentials.credentials)
    except (JWTError, ValueError) as e:
        logger.warning(f"[AUTH] Identity token rejected: {e}")
        raise APIError(
            status.HTTP_401_UNAUTHORIZED,
            "Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_identity(
    identity: Annotated[IdentityAssertion | None, Depends(get_identity)],
) -> IdentityAssertion:
    if identity is None:
        raise APIError(
            status.HTTP_401_UNAUTHORIZED,
            "Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


# ---------------------------------------------------
# Current User
# ---------------------------------------------------
async def get_optional_user(
    identity: Annotated[IdentityAssertion | None, Depends(get_identity)],
    bridge: Annotated[IdentityBridge, Depends(get_identity_bridge)],
) -> UserRead | None:
    return await bridge.reconcile(identity)


async def get_current_user(
    identity: Annotated[IdentityAssertion, Depends(require_identity)],
    bridge: Annotated[IdentityBridge, Depends(get_identity_bridge)],
) -> UserRead:
    """Reconciled user; may be a fallback user without a stored record."""
    return await bridge.reconcile(identity)


async def require_persisted_user(
    user: Annotated[UserRead, Depends(get_current_user)],
) -> UserRead:
    """
    Current user backed by a stored record. Writes that reference the user
    need this; a fallback user is asked to retry once the record is synced.
    """
    if user.id is None:
        logger.info(f"[AUTH] No stored record yet for identity {user.auth_uid}")
        raise APIError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Your account is still being set up, please retry shortly",
        )
    return user


# ---------------------------------------------------
# Authorization (Role-Based)
# ---------------------------------------------------
def require_role(*roles: UserRole) -> Callable[..., Coroutine[Any, Any, UserRead]]:
    """
    Dependency to restrict access to stored users having any of the given roles.
    """

    async def checker(user: Annotated[UserRead, Depends(require_persisted_user)]) -> UserRead:
        if user.role not in roles:
            logger.warning(
                f"[RBAC] Access denied: User {user.id} with role {user.role.value} "
                f"(allowed roles: {[r.value for r in roles]})"
            )
            raise APIError(status.HTTP_403_FORBIDDEN, f"Access denied for role: {user.role.value}")
        return user

    return checker


CurrentUserDep = Annotated[UserRead, Depends(get_current_user)]
OptionalUserDep = Annotated[UserRead | None, Depends(get_optional_user)]
PersistedUserDep = Annotated[UserRead, Depends(require_persisted_user)]
ProviderDep = Annotated[UserRead, Depends(require_role(UserRole.PROVIDER))]
