"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from datetime import timedelta
from functools import lru_cache

from knowbook_canvas.clients import AuthServiceClient, KnowbookApiClient
from knowbook_canvas.core.config import get_settings
from knowbook_canvas.services import (
    ConnectionStatusMonitor,
    CredentialStore,
    SignupService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_knowbook_api_client() -> KnowbookApiClient:
    """Create the process-wide Knowbook API client."""
    settings = _settings().knowbook
    return KnowbookApiClient(
        settings.api_url,
        settings.admin_api_key,
        timeout=settings.request_timeout_seconds,
        health_timeout=settings.health_timeout_seconds,
    )


@lru_cache()
def get_auth_service_client() -> AuthServiceClient:
    """Create the process-wide auth provider client."""
    settings = _settings().auth
    return AuthServiceClient(
        str(settings.url),
        settings.anon_key,
        settings.service_role_key,
    )


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide the credential store backed by auth provider metadata."""
    return CredentialStore(get_auth_service_client())


def get_signup_service() -> SignupService:
    """Build the signup workflow using configured clients."""
    return SignupService(
        auth_client=get_auth_service_client(),
        api_client=get_knowbook_api_client(),
        credential_store=get_credential_store(),
        default_plan=_settings().knowbook.default_plan,
    )


def get_connection_status_monitor() -> ConnectionStatusMonitor:
    """Build a fresh per-request connection status monitor."""
    return ConnectionStatusMonitor(
        credential_store=get_credential_store(),
        api_client=get_knowbook_api_client(),
        stale_after=timedelta(hours=_settings().credential_stale_after_hours),
    )


__all__ = [
    "get_auth_service_client",
    "get_connection_status_monitor",
    "get_credential_store",
    "get_knowbook_api_client",
    "get_signup_service",
]
