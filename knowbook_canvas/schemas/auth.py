"""Schemas related to accounts held by the auth provider."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """Subset of the auth provider's user object used by this service."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class SignupRequest(BaseModel):
    """Payload submitted by the signup form."""

    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = Field(None, description="Display name of the new user.")
    organization_name: Optional[str] = Field(
        None, description="Name for the Knowbook organization created at signup."
    )
    plan: Optional[str] = Field(None, description="Knowbook plan; defaults to free.")


__all__ = ["AuthUser", "SignupRequest"]
