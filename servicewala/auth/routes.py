"""
auth/routes.py

Identity endpoints:
- Current user for the bearer identity token (null when signed out)
- Registration with a role (client or provider)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from servicewala.auth.schemas import IdentityAssertion, RegisterRequest
from servicewala.auth.services import IdentityBridge
from servicewala.core.dependencies import OptionalUserDep, get_identity_bridge, require_identity
from servicewala.core.limiter import limiter
from servicewala.user.schemas import UserRead

router = APIRouter(prefix="/auth", tags=["Auth"])

IdentityDep = Annotated[IdentityAssertion, Depends(require_identity)]
BridgeDep = Annotated[IdentityBridge, Depends(get_identity_bridge)]


@router.get(
    "/me",
    response_model=UserRead | None,
    status_code=status.HTTP_200_OK,
    summary="Current User",
    description="Reconcile the identity token with the local user. Returns null when signed out.",
)
@limiter.limit("60/minute")
async def get_me(request: Request, user: OptionalUserDep) -> UserRead | None:
    return user


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Store the signed-in identity as a client or provider. Fails with 503 if the record cannot be saved.",
)
@limiter.limit("5/minute")
async def register(
    request: Request,
    payload: RegisterRequest,
    identity: IdentityDep,
    bridge: BridgeDep,
) -> UserRead:
    """Register the current identity with the chosen role."""
    return await bridge.register(identity, payload.role, payload.name)
