"""
Async client for the OrgDesk HTTP API.

Handles:
- Bearer tokens from an environment variable or an external command
- One silent token refresh and retry when the API answers 401
- Problem payloads surfaced as ``ApiError``
"""

from __future__ import annotations

import asyncio
import os
import uuid
from typing import Any, Optional

import httpx
import structlog

from orgdesk_shared.schemas import (
    MemberAddRequest,
    MemberResponse,
    MemberUpdateRequest,
    OrgCreateRequest,
    OrgResponse,
    OrgUpdateRequest,
    Paged,
    ProblemDetails,
    Role,
)

from .config import ClientConfig

log = structlog.get_logger()


class ApiError(Exception):
    """The API answered with an error status."""

    def __init__(self, status: int, message: str, problem: Optional[ProblemDetails] = None):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
        self.problem = problem

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        problem: Optional[ProblemDetails] = None
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            problem = ProblemDetails.model_validate(payload)
        message = (
            (problem.detail or problem.title) if problem else None
        ) or response.reason_phrase or "Request failed"
        return cls(response.status_code, message, problem)


class TokenUnavailable(Exception):
    """No access token could be obtained."""


class TokenSource:
    """
    Supplies bearer tokens.

    A token command is run once and its output cached until a refresh is
    forced; an environment variable is re-read on every call.
    """

    def __init__(
        self,
        env_var: Optional[str] = None,
        command: Optional[str] = None,
        token: Optional[str] = None,
    ):
        self._env_var = env_var
        self._command = command
        self._static = token
        self._cached: Optional[str] = None

    @classmethod
    def from_config(cls, config: ClientConfig) -> "TokenSource":
        return cls(env_var=config.auth.token_env, command=config.auth.token_command)

    async def get(self, *, refresh: bool = False) -> Optional[str]:
        if self._static:
            return self._static
        if self._command:
            if refresh or not self._cached:
                self._cached = await self._run_command()
            return self._cached
        if self._env_var:
            return os.environ.get(self._env_var) or None
        return None

    async def _run_command(self) -> str:
        proc = await asyncio.create_subprocess_shell(
            self._command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise TokenUnavailable(
                f"Token command exited with {proc.returncode}: {stderr.decode().strip()}"
            )
        token = stdout.decode().strip()
        if not token:
            raise TokenUnavailable("Token command produced no output")
        log.debug("client.token_acquired", source="command")
        return token


class OrgDeskClient:
    """
    Client for the organizations API.

    Use as an async context manager, or call ``open()``/``close()``.
    """

    def __init__(
        self,
        base_url: str,
        tokens: Optional[TokenSource] = None,
        verify_tls: bool = True,
        request_timeout: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._tokens = tokens
        self._verify_tls = verify_tls
        self._request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> "OrgDeskClient":
        return cls(
            config.api.url,
            tokens=TokenSource.from_config(config),
            verify_tls=config.api.verify_tls,
            request_timeout=config.api.request_timeout_seconds,
            **kwargs,
        )

    async def open(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._request_timeout),
            verify=self._verify_tls,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OrgDeskClient":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # --- Transport ---

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
        authenticated: bool,
        refresh: bool = False,
    ) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("Client is not open; use 'async with' or call open()")

        headers = {}
        if authenticated and self._tokens is not None:
            token = await self._tokens.get(refresh=refresh)
            if token:
                headers["Authorization"] = f"Bearer {token}"

        response = await self._client.request(
            method, path, json=json, params=params, headers=headers
        )
        log.debug("client.request", method=method, path=path, status=response.status_code)
        return response

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> httpx.Response:
        response = await self._send(
            method, path, json=json, params=params, authenticated=authenticated
        )
        if response.status_code == 401 and authenticated and self._tokens is not None:
            log.info("client.token_refresh", path=path)
            response = await self._send(
                method, path, json=json, params=params, authenticated=True, refresh=True
            )

        if response.is_error:
            error = ApiError.from_response(response)
            log.warning(
                "client.request_failed",
                method=method,
                path=path,
                status=error.status,
                detail=error.message,
            )
            raise error
        return response

    # --- Organizations ---

    async def list_orgs(self) -> list[OrgResponse]:
        resp = await self._request("GET", "/api/organizations", authenticated=False)
        return [OrgResponse.model_validate(o) for o in resp.json()]

    async def search_orgs(
        self,
        query: Optional[str] = None,
        *,
        sort: str = "createdAt",
        order: str = "desc",
        page: int = 1,
        page_size: int = 10,
    ) -> Paged[OrgResponse]:
        params: dict[str, Any] = {
            "sort": sort,
            "order": order,
            "page": page,
            "pageSize": page_size,
        }
        if query:
            params["query"] = query
        resp = await self._request(
            "GET", "/api/organizations/search", params=params, authenticated=False
        )
        return Paged[OrgResponse].model_validate(resp.json())

    async def get_org(self, org_id: uuid.UUID | str) -> OrgResponse:
        resp = await self._request("GET", f"/api/organizations/{org_id}", authenticated=False)
        return OrgResponse.model_validate(resp.json())

    async def my_orgs(self) -> list[OrgResponse]:
        resp = await self._request("GET", "/api/organizations/mine")
        return [OrgResponse.model_validate(o) for o in resp.json()]

    async def create_org(self, name: str) -> OrgResponse:
        body = OrgCreateRequest(name=name).model_dump(by_alias=True)
        resp = await self._request("POST", "/api/organizations", json=body)
        return OrgResponse.model_validate(resp.json())

    async def rename_org(self, org_id: uuid.UUID | str, name: str) -> OrgResponse:
        body = OrgUpdateRequest(name=name).model_dump(by_alias=True)
        resp = await self._request("PUT", f"/api/organizations/{org_id}", json=body)
        return OrgResponse.model_validate(resp.json())

    async def delete_org(self, org_id: uuid.UUID | str) -> None:
        await self._request("DELETE", f"/api/organizations/{org_id}")

    # --- Members ---

    async def list_members(self, org_id: uuid.UUID | str) -> list[MemberResponse]:
        resp = await self._request("GET", f"/api/organizations/{org_id}/members")
        return [MemberResponse.model_validate(m) for m in resp.json()]

    async def add_member(
        self,
        org_id: uuid.UUID | str,
        user_sub: str,
        user_name: str,
        role: Role | str = Role.MEMBER,
    ) -> MemberResponse:
        body = MemberAddRequest(
            user_sub=user_sub, user_name=user_name, role=Role(role)
        ).model_dump(by_alias=True, mode="json")
        resp = await self._request("POST", f"/api/organizations/{org_id}/members", json=body)
        return MemberResponse.model_validate(resp.json())

    async def change_role(
        self, org_id: uuid.UUID | str, member_id: uuid.UUID | str, role: Role | str
    ) -> None:
        body = MemberUpdateRequest(role=Role(role)).model_dump(by_alias=True, mode="json")
        await self._request(
            "PUT", f"/api/organizations/{org_id}/members/{member_id}", json=body
        )

    async def remove_member(
        self, org_id: uuid.UUID | str, member_id: uuid.UUID | str
    ) -> None:
        await self._request("DELETE", f"/api/organizations/{org_id}/members/{member_id}")

    # --- Identity & system ---

    async def me(self) -> dict[str, Any]:
        resp = await self._request("GET", "/api/me")
        return resp.json()

    async def secure_ping(self) -> dict[str, Any]:
        resp = await self._request("GET", "/api/secureping")
        return resp.json()

    async def health(self) -> dict[str, Any]:
        resp = await self._request("GET", "/health", authenticated=False)
        return resp.json()
