"""Public schema exports."""

from .auth import AuthUser, SignupRequest
from .knowbook import (
    AdminUser,
    ConnectRequest,
    CreateUserResponse,
    KnowbookUser,
    Organization,
    OrganizationSignupResponse,
)

__all__ = [
    "AdminUser",
    "AuthUser",
    "ConnectRequest",
    "CreateUserResponse",
    "KnowbookUser",
    "Organization",
    "OrganizationSignupResponse",
    "SignupRequest",
]
