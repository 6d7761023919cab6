"""API test fixtures — FastAPI test client and bearer tokens.

Invariants:
    - get_db dependency overridden to use the per-test in-memory database
    - db_manager patched so readiness probes hit the test engine
    - Tokens are signed with the suite's JWT_SECRET (pinned in the root conftest)

Design Decisions:
    - ASGITransport without lifespan: the app's startup would otherwise build a
      second engine from DATABASE_URL
"""

import pytest
import jwt
from httpx import ASGITransport, AsyncClient

import cardledger.infrastructure.database as db_module
from cardledger.config import get_settings
from cardledger.infrastructure.database import DatabaseSessionManager, get_db
from cardledger.main import app


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def make_token():
    """Sign a token for `owner` (extra claims merged in)."""
    def _make(owner: str | None = "u1", **claims) -> str:
        payload = dict(claims)
        if owner is not None:
            payload["id"] = owner
        settings = get_settings()
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return _make


@pytest.fixture
def auth(make_token):
    """Authorization headers for an owner: auth("u1")."""
    def _auth(owner: str = "u1") -> dict:
        return {"Authorization": f"Bearer {make_token(owner)}"}
    return _auth


@pytest.fixture
async def cash_card(client, auth):
    """A card owned by u1 opened with 100."""
    res = await client.post(
        "/cards", json={"name": "Cash", "color": "green", "balance": 100},
        headers=auth("u1"),
    )
    assert res.status_code == 201
    return res.json()
