"""
auth/schemas.py

Defines Pydantic models for identity flows:
- The verified identity assertion decoded from a bearer token
- Signup (registration) request payload
"""

from datetime import datetime

from pydantic import BaseModel, Field

from servicewala.core.schemas import CamelModel
from servicewala.database.enums import UserRole


class IdentityAssertion(BaseModel):
    """Claims of a verified identity token."""

    uid: str = Field(..., description="Stable external identity id")
    name: str | None = Field(None, description="Display name, when the provider has one")
    email: str
    email_verified: bool = False
    avatar: str | None = None
    signed_in_at: datetime | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@", 1)[0]


class RegisterRequest(CamelModel):
    role: UserRole = Field(..., description="client or provider, fixed at signup")
    name: str | None = Field(None, min_length=1, max_length=200, description="Display name")
