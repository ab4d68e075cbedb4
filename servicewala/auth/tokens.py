"""
auth/tokens.py

Identity token utilities:
- Verify a bearer token issued by the identity provider
- Issue identity tokens (local development and tests)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt

from servicewala.auth.schemas import IdentityAssertion
from servicewala.core.config import settings

logger = logging.getLogger(__name__)


def decode_identity_token(token: str) -> IdentityAssertion:
    """
    Verify a token and build the identity assertion from its claims.

    Raises:
        JWTError: bad signature, expired token, wrong audience or issuer.
        ValueError: required claims are missing.
    """
    options = {"verify_aud": settings.IDENTITY_AUDIENCE is not None}
    claims = jwt.decode(
        token,
        settings.IDENTITY_TOKEN_SECRET,
        algorithms=[settings.IDENTITY_TOKEN_ALGORITHM],
        audience=settings.IDENTITY_AUDIENCE,
        issuer=settings.IDENTITY_ISSUER,
        options=options,
    )

    uid = claims.get("sub")
    if not uid or not claims.get("email"):
        raise ValueError("Identity token must carry 'sub' and 'email' claims")

    signed_in = claims.get("auth_time") or claims.get("iat")
    return IdentityAssertion(
        uid=str(uid),
        name=claims.get("name") or None,
        email=str(claims["email"]),
        email_verified=bool(claims.get("email_verified", False)),
        avatar=claims.get("picture"),
        signed_in_at=datetime.fromtimestamp(signed_in, tz=timezone.utc) if signed_in else None,
    )


def create_identity_token(
    uid: str,
    email: str,
    name: str | None = None,
    email_verified: bool = True,
    expires_delta: timedelta = timedelta(hours=1),
) -> str:
    """Issue an identity token signed with the configured key."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": uid,
        "email": email,
        "email_verified": email_verified,
        "iat": int(now.timestamp()),
        "auth_time": int(now.timestamp()),
        "exp": now + expires_delta,
    }
    if name:
        payload["name"] = name
    if settings.IDENTITY_AUDIENCE:
        payload["aud"] = settings.IDENTITY_AUDIENCE
    if settings.IDENTITY_ISSUER:
        payload["iss"] = settings.IDENTITY_ISSUER

    logger.debug(f"[IDENTITY] Issuing identity token for sub={uid}")
    return str(
        jwt.encode(payload, settings.IDENTITY_TOKEN_SECRET, algorithm=settings.IDENTITY_TOKEN_ALGORITHM)
    )
