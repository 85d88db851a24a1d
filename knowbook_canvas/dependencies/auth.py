"""
FastAPI dependency resolving the signed-in user from the request's session token.
"""

from typing import Annotated, Any, Optional

from fastapi import Depends, Request

from knowbook_canvas.dependencies.clients import get_auth_service_client
from knowbook_canvas.schemas import AuthUser

SESSION_COOKIE = "sb-access-token"


def _extract_access_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(SESSION_COOKIE) or None


async def get_current_user(
    request: Request,
    auth_client: Annotated[Any, Depends(get_auth_service_client)],
) -> Optional[AuthUser]:
    """Return the session user, or ``None`` so routes can answer 401 themselves."""
    token = _extract_access_token(request)
    if not token:
        return None
    return await auth_client.get_user(token)


__all__ = ["SESSION_COOKIE", "get_current_user"]
