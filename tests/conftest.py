"""Shared test fixtures for Anchor-Engine."""

import pytest
from httpx import ASGITransport, AsyncClient


AUDIT_KEY = "test-audit-key-for-unit-tests"
API_KEY = "test-gateway-api-key"
TENANT_A = "11111111-1111-1111-1111-111111111111"
TENANT_B = "22222222-2222-2222-2222-222222222222"


def actor_headers(actor_id: str, role: str | None = None, tenant_id: str | None = None) -> dict:
    headers = {"X-Anchor-Api-Key": API_KEY, "X-Actor-Id": actor_id}
    if role:
        headers["X-Actor-Role"] = role
    if tenant_id:
        headers["X-Tenant-Id"] = tenant_id
    return headers


@pytest.fixture
def api_key():
    return API_KEY


@pytest.fixture
def app(monkeypatch):
    """Create a test app with in-memory DB."""
    monkeypatch.setenv("ANCHOR_DB_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("ANCHOR_AUDIT_HMAC_KEY", AUDIT_KEY)
    monkeypatch.setenv("ANCHOR_API_KEY", API_KEY)

    # Clear caches and singletons so new env vars take effect
    from anchor_engine.common.config import get_settings
    get_settings.cache_clear()

    from anchor_engine.deps import reset_singletons
    reset_singletons()

    from anchor_engine.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from anchor_engine.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def admin_headers():
    return actor_headers("admin-a", "ORG_ADMIN", TENANT_A)


@pytest.fixture
def other_admin_headers():
    return actor_headers("admin-b", "ORG_ADMIN", TENANT_B)


@pytest.fixture
def member_headers():
    return actor_headers("member-a", "INDIVIDUAL", TENANT_A)


@pytest.fixture
def anonymous_headers():
    return {"X-Anchor-Api-Key": API_KEY}
