"""
Pydantic models mirroring the Knowbook API payloads and the connect endpoint.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Organization(BaseModel):
    """Organization as returned by the Knowbook API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    slug: Optional[str] = None
    plan: Optional[str] = None


class AdminUser(BaseModel):
    """Administrator account created alongside an organization."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    api_key: Optional[str] = Field(
        None, description="Secret key issued for the new administrator."
    )


class OrganizationSignupResponse(BaseModel):
    """Response body of ``POST /organizations/signup``."""

    model_config = ConfigDict(extra="ignore")

    organization: Organization
    admin_user: AdminUser
    message: Optional[str] = None


class KnowbookUser(BaseModel):
    """User record exposed by the Knowbook admin endpoints."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str
    api_key: Optional[str] = None
    organization_id: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None


class CreateUserResponse(BaseModel):
    """Response body of the admin ``POST /users`` call."""

    model_config = ConfigDict(extra="ignore")

    user: KnowbookUser
    api_key: str
    message: Optional[str] = None


class ConnectRequest(BaseModel):
    """Body accepted by ``POST /api/knowbook/connect``."""

    model_config = ConfigDict(populate_by_name=True)

    organization_name: Optional[str] = Field(None, alias="organizationName")
    full_name: Optional[str] = Field(None, alias="fullName")


__all__ = [
    "AdminUser",
    "ConnectRequest",
    "CreateUserResponse",
    "KnowbookUser",
    "Organization",
    "OrganizationSignupResponse",
]
