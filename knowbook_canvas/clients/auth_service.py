"""
Client for the hosted authentication provider.

Speaks the GoTrue REST dialect: end-user calls (sign up, session lookup) are
sent with the public anon key, metadata administration with the service role
key. Only the handful of endpoints this app needs are wrapped.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from knowbook_canvas.schemas import AuthUser

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    """Raised when the auth provider rejects or fails a request."""

    def __init__(
        self, message: str, status_code: int, error_code: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or "auth_error"


class AuthServiceClient:
    """Account creation, session lookup and user metadata access."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        service_role_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = f"{str(url).rstrip('/')}/auth/v1"
        self._anon_key = anon_key
        self._service_role_key = service_role_key
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport
        )

    def _admin_headers(self) -> Dict[str, str]:
        return {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
        }

    async def sign_up(
        self,
        email: str,
        password: str,
        *,
        redirect_to: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuthUser]:
        """
        Create an account that must confirm its email before signing in.

        Returns ``None`` when the provider accepted the request without
        returning a user object.
        """
        body = {"email": email, "password": password, "data": data or {}}
        response = await self._request(
            "POST",
            "/signup",
            json=body,
            params={"redirect_to": redirect_to},
            headers={"apikey": self._anon_key},
        )
        payload = self._json(response)
        # Providers with autoconfirm enabled wrap the user in a session payload.
        user_payload = payload.get("user", payload) if isinstance(payload, dict) else None
        if not user_payload or not user_payload.get("id"):
            return None
        # With email confirmation on, a taken address comes back as an
        # obfuscated user without identities instead of an error.
        if user_payload.get("identities") == []:
            raise AuthServiceError("User already registered", 422, "user_already_exists")
        return self._to_user(user_payload)

    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        """Resolve a session access token to its user; ``None`` when invalid."""
        try:
            async with self._client() as client:
                response = await client.get(
                    "/user",
                    headers={
                        "apikey": self._anon_key,
                        "Authorization": f"Bearer {access_token}",
                    },
                )
        except httpx.HTTPError as exc:
            logger.error("Session lookup failed: %s", exc)
            return None
        if not response.is_success:
            return None
        try:
            return AuthUser.model_validate(response.json())
        except ValueError:
            logger.warning("Auth provider returned an unreadable user payload.")
            return None

    async def get_user_by_id(self, user_id: str) -> AuthUser:
        """Fetch a user, metadata included, with the service role key."""
        response = await self._request(
            "GET", f"/admin/users/{user_id}", headers=self._admin_headers()
        )
        return self._to_user(self._json(response))

    async def update_user_metadata(
        self, user_id: str, metadata: Dict[str, Any]
    ) -> AuthUser:
        """Replace the user's metadata object with ``metadata``."""
        response = await self._request(
            "PUT",
            f"/admin/users/{user_id}",
            json={"user_metadata": metadata},
            headers=self._admin_headers(),
        )
        return self._to_user(self._json(response))

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise AuthServiceError(
                f"Auth service unreachable: {exc}", 503, "auth_unavailable"
            ) from exc

        if not response.is_success:
            raise self._error_from_response(response)
        return response

    @staticmethod
    def _error_from_response(response: httpx.Response) -> AuthServiceError:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        message = (
            payload.get("msg")
            or payload.get("error_description")
            or payload.get("message")
            or f"Auth service returned HTTP {response.status_code}"
        )
        error_code = payload.get("error_code") or payload.get("error")
        return AuthServiceError(message, response.status_code, error_code)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise AuthServiceError(
                "Auth service returned an unreadable response.", 502
            ) from exc

    @staticmethod
    def _to_user(payload: Any) -> AuthUser:
        try:
            return AuthUser.model_validate(payload)
        except ValidationError as exc:
            raise AuthServiceError(
                "Auth service returned an unexpected user payload.", 502
            ) from exc


__all__ = ["AuthServiceClient", "AuthServiceError"]
