"""
FastAPI dependency utilities for injecting configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from knowbook_canvas.core.config import AppSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_site_url(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> str:
    """Public base URL for links in outgoing emails; the request's when unset."""
    if settings.site_url:
        return str(settings.site_url).rstrip("/")
    return str(request.base_url).rstrip("/")


SettingsDependency = Depends(get_app_settings)

__all__ = ["SettingsDependency", "get_app_settings", "get_site_url"]
