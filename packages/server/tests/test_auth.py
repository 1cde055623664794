"""
Tests for token validation and claim handling.
"""

from __future__ import annotations

import threading

import jwt
import pytest
from httpx import AsyncClient

from app.core import auth
from app.core.auth import (
    MS_SCOPE_CLAIM,
    NAME_CLAIM_TYPES,
    NAME_IDENTIFIER_CLAIM,
    SUBJECT_CLAIM_TYPES,
    Caller,
    claim_values,
    first_claim,
    has_required_scope,
)
from conftest import TEST_AUDIENCE, TEST_ISSUER, TEST_SECRET, bearer, make_token


# ---------------------------------------------------------------------------
# Claim lookup (no DB needed)
# ---------------------------------------------------------------------------

class TestClaims:
    def test_subject_prefers_sub(self):
        claims = {"sub": "S", NAME_IDENTIFIER_CLAIM: "NI", "nameid": "N"}
        assert first_claim(claims, SUBJECT_CLAIM_TYPES) == "S"

    def test_subject_falls_back_in_order(self):
        assert first_claim({NAME_IDENTIFIER_CLAIM: "NI", "nameid": "N"}, SUBJECT_CLAIM_TYPES) == "NI"
        assert first_claim({"nameid": "N"}, SUBJECT_CLAIM_TYPES) == "N"
        assert first_claim({}, SUBJECT_CLAIM_TYPES) is None

    def test_blank_values_are_skipped(self):
        assert first_claim({"sub": "  ", "nameid": "N"}, SUBJECT_CLAIM_TYPES) == "N"

    def test_name_falls_back_to_preferred_username(self):
        caller = Caller({"sub": "S", "preferred_username": "alice@example.test"})
        assert caller.name == "alice@example.test"
        assert first_claim({}, NAME_CLAIM_TYPES) is None

    def test_claim_values_splits_and_flattens(self):
        claims = {"scp": "read access_as_user", "roles": ["Admin", "Reader"]}
        assert claim_values(claims, ("scp", "roles")) == {"read", "access_as_user", "Admin", "Reader"}

    def test_scope_from_scp(self):
        assert has_required_scope({"scp": "openid access_as_user"})
        assert not has_required_scope({"scp": "openid profile"})

    def test_scope_from_ms_scope_claim(self):
        assert has_required_scope({MS_SCOPE_CLAIM: "access_as_user"})

    def test_scope_from_roles(self):
        assert has_required_scope({"roles": ["access_as_user"]})
        assert has_required_scope({"role": "access_as_user"})

    def test_scope_is_exact_match(self):
        assert not has_required_scope({"scp": "access_as_user_extra"})

    def test_custom_scope(self):
        assert has_required_scope({"scp": "orgs.write"}, scope="orgs.write")


# ---------------------------------------------------------------------------
# Token validation over HTTP
# ---------------------------------------------------------------------------

class TestTokenValidation:
    @pytest.mark.asyncio
    async def test_secureping_with_valid_token(self, client: AsyncClient):
        resp = await client.get("/api/secureping", headers=bearer("U1", "Alice"))
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "user": "Alice"}

    @pytest.mark.asyncio
    async def test_secureping_without_scope(self, client: AsyncClient):
        token = make_token("U1", None, scp=None)
        resp = await client.get("/api/secureping", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["user"] == "(no name)"

    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient):
        resp = await client.get("/api/secureping")
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"
        assert resp.json()["detail"] == "Authentication required"

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient):
        token = make_token(expires_in=-60)
        resp = await client.get("/api/secureping", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_wrong_audience(self, client: AsyncClient):
        token = make_token(aud="api://someone-else")
        resp = await client.get("/api/secureping", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_issuer(self, client: AsyncClient):
        token = make_token(iss="https://evil.example.test/v2.0")
        resp = await client.get("/api/secureping", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_signature(self, client: AsyncClient):
        token = jwt.encode(
            {"sub": "U1", "iss": TEST_ISSUER, "aud": TEST_AUDIENCE, "exp": 9999999999},
            TEST_SECRET + "-tampered",
            algorithm="HS256",
        )
        resp = await client.get("/api/secureping", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_token_decoded_off_event_loop(self, client: AsyncClient, monkeypatch):
        """Key lookups may block on the JWKS endpoint, so decoding runs in a worker thread."""
        threads = []
        original = auth.decode_access_token

        def recording(token):
            threads.append(threading.get_ident())
            return original(token)

        monkeypatch.setattr(auth, "decode_access_token", recording)
        resp = await client.get("/api/secureping", headers=bearer("U1"))
        assert resp.status_code == 200
        assert threads and threads[0] != threading.get_ident()

    @pytest.mark.asyncio
    async def test_garbage_token(self, client: AsyncClient):
        resp = await client.get("/api/secureping", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Identity echo
# ---------------------------------------------------------------------------

class TestIdentityEcho:
    @pytest.mark.asyncio
    async def test_me_echoes_claims(self, client: AsyncClient):
        token = make_token(
            "U1", "Alice", oid="object-1", preferred_username="alice@example.test"
        )
        resp = await client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Alice"
        assert data["subRaw"] == "U1"
        assert data["oidRaw"] == "object-1"
        assert data["upn"] == "alice@example.test"
        assert data["scpRaw"] == "access_as_user"
        assert data["subNI"] is None

    @pytest.mark.asyncio
    async def test_root_me_matches_api_me(self, client: AsyncClient):
        headers = bearer("U1", "Alice")
        root = await client.get("/me", headers=headers)
        api = await client.get("/api/me", headers=headers)
        assert root.status_code == 200
        assert root.json() == api.json()

    @pytest.mark.asyncio
    async def test_me_requires_scope(self, client: AsyncClient):
        resp = await client.get("/api/me", headers=bearer("U1", scp=None))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Required scope is missing"

    @pytest.mark.asyncio
    async def test_scope_as_app_role(self, client: AsyncClient):
        headers = bearer("U1", scp=None, roles=["access_as_user"])
        resp = await client.get("/api/me", headers=headers)
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_nameidentifier_subject_can_create(self, client: AsyncClient):
        token = make_token(None, "Legacy", **{NAME_IDENTIFIER_CLAIM: "NI-1"})
        resp = await client.post(
            "/api/organizations",
            json={"name": "Via NI"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 201
        assert resp.json()["createdBy"] == "NI-1"
