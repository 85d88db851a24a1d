try:
    from . import _bootstrap, _fakes  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401
    import _fakes  # type: ignore

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from knowbook_canvas.clients import KnowbookApiError
from knowbook_canvas.main import app
from knowbook_canvas.services import ConnectionStatusMonitor, CredentialStore

pytestmark = pytest.mark.anyio

TOKEN = "session-token"
AUTH_HEADERS = {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture()
def overrides():
    from knowbook_canvas import dependencies

    auth = _fakes.FakeAuthService()
    api = _fakes.FakeKnowbookApi()
    store = CredentialStore(auth)

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_auth_service_client: lambda: auth,
            dependencies.get_knowbook_api_client: lambda: api,
            dependencies.get_credential_store: lambda: store,
            dependencies.get_connection_status_monitor: lambda: ConnectionStatusMonitor(
                store, api
            ),
        }
    )

    yield auth, api

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


async def test_connect_requires_session(overrides):
    async with _client() as client:
        missing = await client.post("/api/knowbook/connect", json={})
        invalid = await client.post(
            "/api/knowbook/connect", json={}, headers={"Authorization": "Bearer nope"}
        )

    assert missing.status_code == 401
    assert missing.json() == {"error": "Unauthorized"}
    assert invalid.status_code == 401


async def test_connect_creates_organization_and_stores_key(overrides):
    auth, api = overrides
    auth.add_user("auth-1", "jane@acme.io", {"full_name": "Jane"}, token=TOKEN)

    async with _client() as client:
        response = await client.post(
            "/api/knowbook/connect", json={"fullName": "Jane Doe"}, headers=AUTH_HEADERS
        )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["organization"] == {
        "id": "org-123",
        "name": "Test Organization",
        "slug": "test-organization",
        "plan": "free",
    }
    assert body["user"]["id"] == "kb-user-123"
    assert "api_key" not in body["user"]
    assert api.organization_calls == [
        {
            "name": "Jane Doe's Workspace",
            "admin_name": "Jane Doe",
            "admin_email": "jane@acme.io",
            "domain": "acme.io",
            "plan": "free",
        }
    ]
    metadata = auth.users["auth-1"].user_metadata
    assert metadata["knowbook_api_key"] == "kb_test_key_123"
    assert metadata["full_name"] == "Jane"


async def test_connect_derives_workspace_from_domain(overrides):
    auth, api = overrides
    auth.add_user("auth-1", "jane@acme.io", token=TOKEN)

    async with _client() as client:
        response = await client.post("/api/knowbook/connect", headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert api.organization_calls[0]["name"] == "acme.io Workspace"
    assert api.organization_calls[0]["admin_name"] == "jane"


async def test_connect_refuses_when_key_exists(overrides):
    auth, api = overrides
    auth.add_user("auth-1", "jane@acme.io", {"knowbook_api_key": "kb_existing"}, token=TOKEN)

    async with _client() as client:
        response = await client.post(
            "/api/knowbook/connect", json={"organizationName": "Acme"}, headers=AUTH_HEADERS
        )

    assert response.status_code == 400
    assert response.json()["hasApiKey"] is True
    assert api.health_calls == 0
    assert api.organization_calls == []


async def test_connect_requires_email(overrides):
    auth, api = overrides
    auth.add_user("auth-1", None, token=TOKEN)

    async with _client() as client:
        response = await client.post("/api/knowbook/connect", json={}, headers=AUTH_HEADERS)

    assert response.status_code == 400
    assert response.json() == {"error": "User email is required"}
    assert api.organization_calls == []


async def test_connect_unavailable_backend_returns_503(overrides):
    auth, api = overrides
    auth.add_user("auth-1", "jane@acme.io", token=TOKEN)
    api.healthy = False

    async with _client() as client:
        response = await client.post("/api/knowbook/connect", json={}, headers=AUTH_HEADERS)

    assert response.status_code == 503
    assert api.organization_calls == []


@pytest.mark.parametrize(
    ("upstream_status", "expected_status"),
    [(409, 409), (400, 400), (502, 502), (302, 500), (700, 500)],
)
async def test_connect_passes_through_api_errors(overrides, upstream_status, expected_status):
    auth, api = overrides
    auth.add_user("auth-1", "jane@acme.io", token=TOKEN)
    api.error = KnowbookApiError("Email already exists", upstream_status, "dup")

    async with _client() as client:
        response = await client.post("/api/knowbook/connect", json={}, headers=AUTH_HEADERS)

    assert response.status_code == expected_status
    assert response.json() == {
        "error": "Email already exists",
        "details": "dup",
        "statusCode": upstream_status,
    }


async def test_connect_storage_failure_returns_500(overrides):
    auth, _ = overrides
    auth.add_user("auth-1", "jane@acme.io", token=TOKEN)
    auth.fail_updates = True

    async with _client() as client:
        response = await client.post("/api/knowbook/connect", json={}, headers=AUTH_HEADERS)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to store API key in user profile"}


async def test_connect_status_reports_metadata_without_key(overrides):
    auth, _ = overrides
    auth.add_user(
        "auth-1",
        "jane@acme.io",
        {
            "knowbook_api_key": "kb_key",
            "knowbook_user_id": "kb-user",
            "knowbook_organization_id": "org-1",
            "api_key_created_at": "2025-01-01T00:00:00Z",
            "api_key_last_validated": "2025-01-02T00:00:00Z",
        },
        token=TOKEN,
    )

    async with _client() as client:
        response = await client.get("/api/knowbook/connect", headers=AUTH_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["connected"] is True
    assert body["metadata"]["knowbook_organization_id"] == "org-1"
    assert "knowbook_api_key" not in body["metadata"]


async def test_connect_status_when_not_connected(overrides):
    auth, _ = overrides
    auth.add_user("auth-1", "jane@acme.io", token=TOKEN)

    async with _client() as client:
        response = await client.get("/api/knowbook/connect", headers=AUTH_HEADERS)
        unauthorized = await client.get("/api/knowbook/connect")

    assert response.json() == {"connected": False, "metadata": None}
    assert unauthorized.status_code == 401


async def test_status_endpoint_revalidates_stale_key(overrides):
    auth, api = overrides
    stale = (datetime.now(timezone.utc) - timedelta(hours=30)).isoformat()
    auth.add_user(
        "auth-1",
        "jane@acme.io",
        {"knowbook_api_key": "kb_key", "api_key_last_validated": stale},
        token=TOKEN,
    )
    api.valid_keys.add("kb_key")

    async with _client() as client:
        response = await client.get("/api/knowbook/status", headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert response.json()["state"] == "connected"
    assert api.validated == ["kb_key"]


async def test_validate_endpoint_reports_invalid_key(overrides):
    auth, api = overrides
    fresh = datetime.now(timezone.utc).isoformat()
    auth.add_user(
        "auth-1",
        "jane@acme.io",
        {"knowbook_api_key": "kb_revoked", "api_key_last_validated": fresh},
        token=TOKEN,
    )

    async with _client() as client:
        response = await client.post("/api/knowbook/validate", headers=AUTH_HEADERS)
        unauthorized = await client.post("/api/knowbook/validate")

    body = response.json()
    assert body["state"] == "error"
    assert body["error"] == "Invalid Knowbook API key"
    assert api.validated == ["kb_revoked"]
    assert unauthorized.status_code == 401


async def test_health_endpoint(overrides):
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.json() == {"status": "ok"}
