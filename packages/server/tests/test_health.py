"""
Health, diagnostics and middleware tests.
"""

import pytest
from httpx import AsyncClient

from app.core.middleware import SECURITY_HEADERS


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Health endpoint reports Healthy when the store answers."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "Healthy"}


@pytest.mark.asyncio
async def test_health_reports_store_failure(client: AsyncClient, monkeypatch):
    async def broken():
        raise OSError("disk on fire")

    monkeypatch.setattr("app.main.check_connection", broken)
    response = await client.get("/health")
    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["detail"] == "DB exception: disk on fire"


@pytest.mark.asyncio
async def test_security_headers(client: AsyncClient):
    response = await client.get("/health")
    for header, value in SECURITY_HEADERS.items():
        assert response.headers[header] == value


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient):
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 32


@pytest.mark.asyncio
async def test_dbinfo(client: AsyncClient):
    response = await client.get("/debug/dbinfo")
    assert response.status_code == 200
    data = response.json()
    assert data["effective"].startswith("sqlite+aiosqlite:///")
    assert data["dataSource"].endswith("orgdesk.db")
    assert data["dirExists"] is True


@pytest.mark.asyncio
async def test_seed(client: AsyncClient):
    response = await client.post("/debug/seed")
    assert response.status_code == 200
    assert response.json() == {"migrated": True, "canConnect": True}


@pytest.mark.asyncio
async def test_unknown_route_is_problem(client: AsyncClient):
    response = await client.get("/no/such/route")
    assert response.status_code == 404
    assert response.json()["status"] == 404


def test_security_headers_on_plain_app():
    from fastapi import FastAPI
    from fastapi.testclient import TestClient

    from app.core.middleware import SecurityHeadersMiddleware

    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    response = TestClient(app).get("/ping")
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
