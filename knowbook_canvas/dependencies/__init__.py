"""Expose dependency helpers for FastAPI routers."""

from .auth import get_current_user
from .clients import (
    get_auth_service_client,
    get_connection_status_monitor,
    get_credential_store,
    get_knowbook_api_client,
    get_signup_service,
)
from .config import SettingsDependency, get_app_settings, get_site_url

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_auth_service_client",
    "get_connection_status_monitor",
    "get_credential_store",
    "get_current_user",
    "get_knowbook_api_client",
    "get_signup_service",
    "get_site_url",
]
