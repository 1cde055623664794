"""
Authentication and authorization for OrgDesk.

Tokens are issued by an external OIDC provider; this module only validates
them (signature, issuer, audience, expiry) and reads claims:
- Bearer token validation (JWKS for RS*/ES*, shared secret for HS* in local dev)
- Claim-type fallback tables for subject, display name, scopes and roles
- FastAPI dependencies gating endpoints on the required API scope
"""

from __future__ import annotations

from typing import Any, Optional

import jwt
import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from app.core.config import get_settings

log = structlog.get_logger()
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Claim types, consulted in order (first match wins)
# ---------------------------------------------------------------------------

NAME_IDENTIFIER_CLAIM = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier"
OBJECT_ID_CLAIM = "http://schemas.microsoft.com/identity/claims/objectidentifier"
MS_SCOPE_CLAIM = "http://schemas.microsoft.com/identity/claims/scope"

SUBJECT_CLAIM_TYPES: tuple[str, ...] = (
    "sub",
    NAME_IDENTIFIER_CLAIM,
    "nameid",
)

NAME_CLAIM_TYPES: tuple[str, ...] = (
    "name",
    "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name",
    "preferred_username",
)

SCOPE_CLAIM_TYPES: tuple[str, ...] = (
    "scp",
    MS_SCOPE_CLAIM,
)

ROLE_CLAIM_TYPES: tuple[str, ...] = (
    "roles",
    "role",
    "http://schemas.microsoft.com/ws/2008/06/identity/claims/role",
)


def first_claim(claims: dict[str, Any], claim_types: tuple[str, ...]) -> Optional[str]:
    """Return the first non-blank string value among the given claim types."""
    for claim_type in claim_types:
        value = claims.get(claim_type)
        if isinstance(value, str) and value.strip():
            return value
    return None


def claim_values(claims: dict[str, Any], claim_types: tuple[str, ...]) -> set[str]:
    """Collect every space-separated value of the given claim types (str or list)."""
    values: set[str] = set()
    for claim_type in claim_types:
        raw = claims.get(claim_type)
        if raw is None:
            continue
        items = raw if isinstance(raw, (list, tuple)) else [raw]
        for item in items:
            values.update(v for v in str(item).split(" ") if v)
    return values


def has_required_scope(claims: dict[str, Any], scope: Optional[str] = None) -> bool:
    """True when the scope is granted either as a delegated scope or an app role."""
    required = scope or settings.required_scope
    return required in claim_values(claims, SCOPE_CLAIM_TYPES + ROLE_CLAIM_TYPES)


class Caller:
    """Identity of the caller as read from a validated access token."""

    def __init__(self, claims: dict[str, Any]):
        self.claims = claims
        self.subject = first_claim(claims, SUBJECT_CLAIM_TYPES)
        self.name = first_claim(claims, NAME_CLAIM_TYPES)

    def __repr__(self) -> str:
        return f"Caller(subject={self.subject!r}, name={self.name!r})"


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------

_jwks_client: jwt.PyJWKClient | None = None


def get_jwks_client() -> jwt.PyJWKClient:
    """Get or create the JWKS client (keys are cached by PyJWT)."""
    global _jwks_client
    if _jwks_client is None:
        _jwks_client = jwt.PyJWKClient(settings.jwks_url, cache_keys=True)
    return _jwks_client


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify a bearer token and return its claims. Raises jwt.PyJWTError on failure."""
    if settings.jwt_algorithm.startswith("HS"):
        if not settings.dev_secret_key:
            raise jwt.InvalidKeyError("No signing secret configured for HS* tokens")
        key: Any = settings.dev_secret_key
    else:
        key = get_jwks_client().get_signing_key_from_jwt(token).key

    return jwt.decode(
        token,
        key,
        algorithms=[settings.jwt_algorithm],
        audience=settings.oidc_audience or None,
        issuer=settings.token_issuer,
        options={"require": ["exp", "iss"]},
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

async def get_authenticated_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Caller:
    """Any valid token. Raises 401 if the token is missing or fails validation."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Authentication required")

    try:
        # JWKS key fetches are blocking HTTP calls
        claims = await run_in_threadpool(decode_access_token, credentials.credentials)
    except jwt.PyJWTError as exc:
        log.info("auth.token_rejected", reason=type(exc).__name__)
        raise _unauthorized("Invalid or expired token")

    return Caller(claims)


async def require_api_scope(
    caller: Caller = Depends(get_authenticated_caller),
) -> Caller:
    """Requires the API scope (as scope or role claim)."""
    if not has_required_scope(caller.claims):
        raise HTTPException(status_code=403, detail="Required scope is missing")
    return caller


async def require_subject(
    caller: Caller = Depends(require_api_scope),
) -> Caller:
    """Requires the API scope and a resolvable subject claim."""
    if not caller.subject:
        raise HTTPException(status_code=403, detail="Caller subject could not be resolved")
    return caller
