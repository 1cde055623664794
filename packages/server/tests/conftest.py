"""
Shared fixtures for server tests.

The app is configured for a throwaway SQLite file and HS256 tokens before it
is imported; tables are created and dropped around every test.
"""

from __future__ import annotations

import os
import tempfile
import time

_TEST_DIR = tempfile.mkdtemp(prefix="orgdesk-tests-")

TEST_SECRET = "orgdesk-test-signing-secret-0123456789abcdef"
TEST_ISSUER = "https://login.example.test/tenant-id/v2.0"
TEST_AUDIENCE = "api://orgdesk-tests"

os.environ["ORGDESK_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/orgdesk.db"
os.environ["ORGDESK_JWT_ALGORITHM"] = "HS256"
os.environ["ORGDESK_DEV_SECRET_KEY"] = TEST_SECRET
os.environ["ORGDESK_OIDC_ISSUER"] = TEST_ISSUER
os.environ["ORGDESK_OIDC_AUDIENCE"] = TEST_AUDIENCE
os.environ["ORGDESK_ENABLE_DEBUG_ENDPOINTS"] = "true"
os.environ["ORGDESK_LOG_FORMAT"] = "text"
os.environ["ORGDESK_LOG_LEVEL"] = "warning"

import jwt  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.database import async_session_factory, engine  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402


def make_token(
    sub: str | None = "U1",
    name: str | None = "User One",
    *,
    scp: str | None = "access_as_user",
    expires_in: int = 3600,
    **claims,
) -> str:
    """Mint an access token the way the identity provider would."""
    now = int(time.time())
    payload = {
        "iss": TEST_ISSUER,
        "aud": TEST_AUDIENCE,
        "iat": now,
        "exp": now + expires_in,
    }
    if sub is not None:
        payload["sub"] = sub
    if name is not None:
        payload["name"] = name
    if scp is not None:
        payload["scp"] = scp
    payload.update(claims)
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


def bearer(sub: str | None = "U1", name: str | None = None, **kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub, name or f'User {sub}', **kwargs)}"}


@pytest.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    # Pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


@pytest.fixture
async def session(db):
    async with async_session_factory() as s:
        yield s


@pytest.fixture
async def client(db):
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
