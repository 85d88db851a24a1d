"""
Signup workflow: create the auth account, then try to connect it to Knowbook.

Only the auth account is required. Everything after it is best effort: a user
whose Knowbook organization could not be created still lands on the email
confirmation page and can connect later through ``POST /api/knowbook/connect``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from knowbook_canvas.clients import (
    AuthServiceClient,
    AuthServiceError,
    KnowbookApiClient,
    KnowbookApiError,
)
from knowbook_canvas.schemas import AuthUser, SignupRequest
from knowbook_canvas.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

SIGNUP_PAGE_PATH = "/auth/signup"
SIGNUP_SUCCESS_PATH = "/auth/signup/success"
EMAIL_CONFIRM_PATH = "/auth/confirm"
DEFAULT_PLAN = "free"


def email_local_part(email: str) -> str:
    return email.split("@")[0]


def extract_email_domain(email: str) -> str:
    """Return everything after the ``@`` of ``email``."""
    _, _, domain = email.partition("@")
    return domain


def resolve_organization_name(
    email: str,
    organization_name: Optional[str] = None,
    full_name: Optional[str] = None,
) -> str:
    """Explicit organization name, else the full name, else the email prefix."""
    return organization_name or full_name or email_local_part(email)


def resolve_plan(plan: Optional[str] = None, default: str = DEFAULT_PLAN) -> str:
    return plan or default


@dataclass(frozen=True)
class SignupOutcome:
    """Where to send the browser after a signup attempt."""

    redirect_url: str
    auth_user_id: Optional[str] = None
    knowbook_connected: bool = False
    error: Optional[str] = None


class SignupService:
    """Sequential signup across the auth provider and the Knowbook API."""

    def __init__(
        self,
        auth_client: AuthServiceClient,
        api_client: KnowbookApiClient,
        credential_store: CredentialStore,
        *,
        default_plan: str = DEFAULT_PLAN,
    ) -> None:
        self._auth = auth_client
        self._api = api_client
        self._credentials = credential_store
        self._default_plan = default_plan

    async def signup(self, request: SignupRequest, base_url: str) -> SignupOutcome:
        display_name = request.full_name or email_local_part(request.email)
        try:
            user = await self._auth.sign_up(
                request.email,
                request.password,
                redirect_to=f"{base_url.rstrip('/')}{EMAIL_CONFIRM_PATH}",
                data={"full_name": display_name},
            )
        except AuthServiceError as exc:
            logger.error("Auth signup failed (%s): %s", exc.error_code, exc.message)
            query = urlencode({"error": exc.error_code})
            return SignupOutcome(
                redirect_url=f"{SIGNUP_PAGE_PATH}?{query}", error=exc.error_code
            )

        if user is None:
            logger.info("Auth signup accepted without a user object; skipping Knowbook setup.")
            return SignupOutcome(redirect_url=SIGNUP_SUCCESS_PATH)

        connected = await self._connect_knowbook(user, request)
        return SignupOutcome(
            redirect_url=SIGNUP_SUCCESS_PATH,
            auth_user_id=user.id,
            knowbook_connected=connected,
        )

    async def _connect_knowbook(self, user: AuthUser, request: SignupRequest) -> bool:
        """Create the Knowbook organization and keep its key; never raises."""
        if not await self._api.health_check():
            logger.warning(
                "Knowbook API unavailable during signup for user %s; connection deferred.",
                user.id,
            )
            return False

        try:
            result = await self._api.create_organization_with_admin(
                resolve_organization_name(
                    request.email, request.organization_name, request.full_name
                ),
                request.full_name or email_local_part(request.email),
                request.email,
                extract_email_domain(request.email),
                resolve_plan(request.plan, self._default_plan),
            )
        except KnowbookApiError as exc:
            logger.error(
                "Knowbook API error during signup: %s (status %s, details %s)",
                exc.message,
                exc.status_code,
                exc.details,
            )
            logger.warning("Proceeding with auth-only signup for user %s.", user.id)
            return False
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error during Knowbook organization creation")
            return False

        api_key = result.admin_user.api_key
        if not api_key:
            logger.warning("Knowbook organization %s returned no API key.", result.organization.id)
            return False

        stored = await self._credentials.store(
            user.id,
            api_key,
            result.admin_user.id,
            result.organization.id,
        )
        if not stored.success:
            logger.error("Failed to store Knowbook API key: %s", stored.error)
            return False

        logger.info("Connected user %s to Knowbook organization %s", user.id, result.organization.id)
        return True


__all__ = [
    "SignupOutcome",
    "SignupService",
    "extract_email_domain",
    "resolve_organization_name",
    "resolve_plan",
]
