"""
Caller identity endpoints, handy for checking what a token carries.

GET /api/me          - Echo identity claims (scope required)
GET /api/secureping  - Any valid token
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth import (
    MS_SCOPE_CLAIM,
    NAME_IDENTIFIER_CLAIM,
    OBJECT_ID_CLAIM,
    Caller,
    get_authenticated_caller,
    require_api_scope,
)

router = APIRouter(tags=["Identity"])


def describe_caller(caller: Caller) -> dict:
    claims = caller.claims
    return {
        "name": caller.name,
        "oidRaw": claims.get("oid"),
        "oidMs": claims.get(OBJECT_ID_CLAIM),
        "subRaw": claims.get("sub"),
        "subNI": claims.get(NAME_IDENTIFIER_CLAIM),
        "upn": claims.get("preferred_username"),
        "scpRaw": claims.get("scp"),
        "scpMs": claims.get(MS_SCOPE_CLAIM),
    }


@router.get("/me")
async def me(caller: Caller = Depends(require_api_scope)):
    return describe_caller(caller)


@router.get("/secureping")
async def secure_ping(caller: Caller = Depends(get_authenticated_caller)):
    return {"ok": True, "user": caller.name or "(no name)"}
