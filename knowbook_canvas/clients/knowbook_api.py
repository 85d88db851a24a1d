"""
Knowbook API client.

Wraps the backend's REST endpoints used for organization signup and API key
checks. Calls that create state raise :class:`KnowbookApiError`; calls that only
probe state (key validation, health) degrade to ``False``.
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from knowbook_canvas.schemas import (
    CreateUserResponse,
    KnowbookUser,
    OrganizationSignupResponse,
)

logger = logging.getLogger(__name__)

_NETWORK_ERROR_MESSAGE = "Network error connecting to Knowbook API"
_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


class KnowbookApiError(Exception):
    """Raised when a state-changing Knowbook API call fails."""

    def __init__(self, message: str, status_code: int, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __repr__(self) -> str:
        return f"KnowbookApiError({self.message!r}, status_code={self.status_code})"


class KnowbookApiClient:
    """Thin request/response mapper for the Knowbook API."""

    ADMIN_TYPE = "admin"

    def __init__(
        self,
        base_url: str,
        admin_api_key: Optional[str] = None,
        *,
        timeout: float = 30.0,
        health_timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._admin_api_key = admin_api_key
        self._timeout = timeout
        self._health_timeout = health_timeout
        self._transport = transport
        if not admin_api_key:
            logger.warning(
                "KNOWBOOK_ADMIN_API_KEY not configured; admin user endpoints are disabled."
            )

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout if timeout is not None else self._timeout,
            transport=self._transport,
        )

    async def create_organization_with_admin(
        self,
        name: str,
        admin_name: str,
        admin_email: str,
        domain: Optional[str] = None,
        plan: str = "free",
    ) -> OrganizationSignupResponse:
        """Create an organization together with its first administrator."""
        body: Dict[str, Any] = {
            "name": name,
            "plan": plan,
            "admin_name": admin_name,
            "admin_email": admin_email,
            "admin_type": self.ADMIN_TYPE,
        }
        if domain:
            body["domain"] = domain

        response = await self._send(
            "POST",
            "/organizations/signup",
            json=body,
            headers={"Content-Type": "application/json"},
        )
        if not response.is_success:
            raise self._error_from_response(response, "Failed to create organization")
        return self._parse(response, OrganizationSignupResponse)

    async def create_user(
        self,
        email: str,
        full_name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> CreateUserResponse:
        """Create a standalone Knowbook user with the admin key."""
        headers = self._admin_headers()
        body = {
            "email": email,
            "password": password or self.generate_temporary_password(),
            "full_name": full_name or email.split("@")[0],
            "is_active": True,
        }
        response = await self._send("POST", "/users", json=body, headers=headers)
        if not response.is_success:
            raise self._error_from_response(response, "Failed to create user")
        return self._parse(response, CreateUserResponse)

    async def get_user_by_email(self, email: str) -> Optional[KnowbookUser]:
        """Look up a Knowbook user; ``None`` when missing or unreachable."""
        headers = self._admin_headers()
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/users/by-email/{quote(email, safe='')}",
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            logger.error("Knowbook user lookup failed: %s", exc)
            return None

        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if not response.is_success:
            raise self._error_from_response(response, "Failed to get user")
        return self._parse(response, KnowbookUser)

    async def validate_api_key(self, api_key: str) -> bool:
        """Return True iff the backend accepts ``api_key``."""
        try:
            async with self._client() as client:
                response = await client.get("/me", headers={"X-API-Key": api_key})
        except httpx.HTTPError as exc:
            logger.error("API key validation error: %s", exc)
            return False
        return response.is_success

    async def health_check(self) -> bool:
        """Return True when the backend answers its health endpoint in time."""
        try:
            async with self._client(timeout=self._health_timeout) as client:
                response = await client.get("/health")
        except httpx.HTTPError as exc:
            logger.error("Knowbook API health check failed: %s", exc)
            return False
        return response.is_success

    @staticmethod
    def generate_temporary_password(length: int = 16) -> str:
        return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))

    def _admin_headers(self) -> Dict[str, str]:
        if not self._admin_api_key:
            raise KnowbookApiError(
                "Knowbook admin API key is not configured",
                500,
                "Set KNOWBOOK_ADMIN_API_KEY to enable admin user operations.",
            )
        return {"Content-Type": "application/json", "X-API-Key": self._admin_api_key}

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Knowbook API error on %s %s: %s", method, path, exc)
            raise KnowbookApiError(_NETWORK_ERROR_MESSAGE, 500, str(exc)) from exc

    @staticmethod
    def _error_from_response(response: httpx.Response, default_message: str) -> KnowbookApiError:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        message = payload.get("error") or default_message
        detail = payload.get("detail")
        if detail is not None and not isinstance(detail, str):
            detail = str(detail)
        return KnowbookApiError(message, response.status_code, detail)

    @staticmethod
    def _parse(response: httpx.Response, model: type):
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise KnowbookApiError(
                "Unexpected response from Knowbook API",
                502,
                str(exc),
            ) from exc


__all__ = ["KnowbookApiClient", "KnowbookApiError"]
