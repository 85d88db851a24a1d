"""Expose constructed client wrappers."""

from .auth_service import AuthServiceClient, AuthServiceError
from .knowbook_api import KnowbookApiClient, KnowbookApiError

__all__ = [
    "AuthServiceClient",
    "AuthServiceError",
    "KnowbookApiClient",
    "KnowbookApiError",
]
