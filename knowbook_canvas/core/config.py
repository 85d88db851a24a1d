"""
Application configuration models and helpers.

Every environment input the service recognises is declared here so the web
routes, the signup workflow and the API clients all read from one validated
settings tree instead of looking up ``os.environ`` on their own.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()


class KnowbookSettings(BaseSettings):
    """Connection details for the Knowbook backend API."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    api_url: str = Field(
        "http://localhost:8000/api/v1", validation_alias="KNOWBOOK_API_URL"
    )
    admin_api_key: Optional[str] = Field(
        None,
        validation_alias="KNOWBOOK_ADMIN_API_KEY",
        description="Admin-scoped key used only by the server-side user creation calls.",
    )
    request_timeout_seconds: float = Field(30.0, validation_alias="KNOWBOOK_REQUEST_TIMEOUT")
    health_timeout_seconds: float = Field(5.0, validation_alias="KNOWBOOK_HEALTH_TIMEOUT")
    default_plan: str = Field("free", validation_alias="KNOWBOOK_DEFAULT_PLAN")

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class AuthServiceSettings(BaseSettings):
    """Configuration for the hosted authentication provider."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    url: AnyHttpUrl = Field(..., validation_alias="AUTH_SERVICE_URL")
    anon_key: str = Field(
        ...,
        validation_alias="AUTH_SERVICE_ANON_KEY",
        description="Public key sent with end-user requests such as sign up.",
    )
    service_role_key: str = Field(
        ...,
        validation_alias="AUTH_SERVICE_ROLE_KEY",
        description="Server-only key for reading and writing user metadata.",
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    site_url: Optional[AnyHttpUrl] = Field(
        None,
        validation_alias="SITE_URL",
        description="Public URL of the web app; used to build email confirmation links.",
    )
    credential_stale_after_hours: int = Field(
        24, validation_alias="CREDENTIAL_STALE_AFTER_HOURS"
    )
    knowbook: KnowbookSettings = Field(default_factory=KnowbookSettings)
    auth: AuthServiceSettings = Field(default_factory=AuthServiceSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "AuthServiceSettings",
    "KnowbookSettings",
    "get_settings",
]
