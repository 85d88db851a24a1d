"""
FastAPI routes for Knowbook Canvas.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, RedirectResponse

from knowbook_canvas.clients import KnowbookApiError
from knowbook_canvas.dependencies import (
    get_app_settings,
    get_connection_status_monitor,
    get_credential_store,
    get_current_user,
    get_knowbook_api_client,
    get_signup_service,
    get_site_url,
)
from knowbook_canvas.schemas import AuthUser, ConnectRequest, SignupRequest
from knowbook_canvas.services import ConnectionStatus, CredentialStore
from knowbook_canvas.services.signup import email_local_part, extract_email_domain

router = APIRouter()
auth_router = APIRouter()
logger = logging.getLogger(__name__)


def _error(status: HTTPStatus | int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=int(status), content={"error": message, **extra})


def _unauthorized() -> JSONResponse:
    return _error(HTTPStatus.UNAUTHORIZED, "Unauthorized")


def _passthrough_status(status_code: int) -> int:
    """Keep upstream error codes that are valid HTTP errors; otherwise 500."""
    if 400 <= status_code < 600:
        return status_code
    return int(HTTPStatus.INTERNAL_SERVER_ERROR)


def _workspace_name(email: str, payload: ConnectRequest) -> str:
    if payload.organization_name:
        return payload.organization_name
    if payload.full_name:
        return f"{payload.full_name}'s Workspace"
    return f"{extract_email_domain(email)} Workspace"


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@auth_router.post("/auth/signup", status_code=HTTPStatus.SEE_OTHER)
async def signup(
    payload: SignupRequest,
    signup_service: Annotated[Any, Depends(get_signup_service)],
    site_url: Annotated[str, Depends(get_site_url)],
) -> RedirectResponse:
    """Create the account, connect Knowbook when possible, and redirect."""
    outcome = await signup_service.signup(payload, site_url)
    return RedirectResponse(url=outcome.redirect_url, status_code=HTTPStatus.SEE_OTHER)


@router.post("/knowbook/connect")
async def connect_knowbook(
    user: Annotated[Optional[AuthUser], Depends(get_current_user)],
    api_client: Annotated[Any, Depends(get_knowbook_api_client)],
    credential_store: Annotated[Any, Depends(get_credential_store)],
    settings: Annotated[Any, Depends(get_app_settings)],
    payload: Optional[ConnectRequest] = None,
) -> JSONResponse:
    """Create a Knowbook organization for a signed-in user without one."""
    if user is None:
        return _unauthorized()

    # Advisory only: two concurrent requests can both pass this check.
    if CredentialStore.record_from_metadata(user.user_metadata) is not None:
        return _error(
            HTTPStatus.BAD_REQUEST,
            "User already has a Knowbook API key",
            hasApiKey=True,
        )

    payload = payload or ConnectRequest()
    if not user.email:
        return _error(HTTPStatus.BAD_REQUEST, "User email is required")

    try:
        if not await api_client.health_check():
            return _error(
                HTTPStatus.SERVICE_UNAVAILABLE,
                "Knowbook API is currently unavailable. Please try again later.",
            )

        result = await api_client.create_organization_with_admin(
            _workspace_name(user.email, payload),
            payload.full_name or email_local_part(user.email),
            user.email,
            extract_email_domain(user.email),
            settings.knowbook.default_plan,
        )

        if result.admin_user.api_key:
            stored = await credential_store.store(
                user.id,
                result.admin_user.api_key,
                result.admin_user.id,
                result.organization.id,
            )
            if not stored.success:
                logger.error("Failed to store API key: %s", stored.error)
                return _error(
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    "Failed to store API key in user profile",
                )
    except KnowbookApiError as exc:
        logger.error("Knowbook connection error: %s (%s)", exc.message, exc.details)
        return _error(
            _passthrough_status(exc.status_code),
            exc.message,
            details=exc.details,
            statusCode=exc.status_code,
        )
    except Exception:  # pylint: disable=broad-except
        logger.exception("Knowbook connection error")
        return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error")

    organization = result.organization
    admin = result.admin_user
    return JSONResponse(
        content={
            "success": True,
            "organization": {
                "id": organization.id,
                "name": organization.name,
                "slug": organization.slug,
                "plan": organization.plan,
            },
            "user": {"id": admin.id, "name": admin.name, "email": admin.email},
            "message": "Successfully connected to Knowbook!",
        }
    )


@router.get("/knowbook/connect")
async def get_knowbook_connection(
    user: Annotated[Optional[AuthUser], Depends(get_current_user)],
) -> JSONResponse:
    """Report whether the signed-in user has a stored Knowbook key."""
    if user is None:
        return _unauthorized()

    record = CredentialStore.record_from_metadata(user.user_metadata)
    return JSONResponse(
        content={
            "connected": record is not None,
            "metadata": record.public_metadata() if record else None,
        }
    )


@router.get("/knowbook/status", response_model=ConnectionStatus)
async def get_knowbook_status(
    user: Annotated[Optional[AuthUser], Depends(get_current_user)],
    monitor: Annotated[Any, Depends(get_connection_status_monitor)],
) -> Any:
    """Load the credential and re-validate it when it has gone stale."""
    if user is None:
        return _unauthorized()
    return await monitor.load(user.id)


@router.post("/knowbook/validate", response_model=ConnectionStatus)
async def validate_knowbook_key(
    user: Annotated[Optional[AuthUser], Depends(get_current_user)],
    monitor: Annotated[Any, Depends(get_connection_status_monitor)],
) -> Any:
    """Re-check the stored key against the Knowbook API on demand."""
    if user is None:
        return _unauthorized()
    await monitor.load(user.id, validate_stale=False)
    await monitor.validate()
    return monitor.snapshot()


__all__ = ["auth_router", "router"]
