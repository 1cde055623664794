"""
Organization API endpoints.

GET    /api/organizations            - List all orgs (anonymous)
GET    /api/organizations/search     - Search, sort and page orgs (anonymous)
GET    /api/organizations/mine       - Orgs the caller owns
GET    /api/organizations/{orgId}    - Get org details (anonymous)
POST   /api/organizations            - Create an org; caller becomes Owner
PUT    /api/organizations/{orgId}    - Rename an org (Owner only)
DELETE /api/organizations/{orgId}    - Delete an org and its members (Owner only)
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Caller, require_api_scope, require_subject
from app.core.database import get_session
from app.models.organization import Organization
from app.services import membership as membership_service
from app.services import organizations as org_service
from orgdesk_shared.schemas.common import Paged
from orgdesk_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgResponse,
    OrgUpdateRequest,
)

router = APIRouter()


async def get_owned_org(
    org_id: uuid.UUID,
    caller: Caller = Depends(require_subject),
    session: AsyncSession = Depends(get_session),
) -> Organization:
    """Resolve the org (404) and require the caller to own it (403)."""
    org = await org_service.get_org(org_id, session)
    await membership_service.require_owner(org.id, caller.subject, session)
    return org


@router.get("", response_model=list[OrgResponse])
async def list_orgs(session: AsyncSession = Depends(get_session)):
    """List every organization, newest first."""
    return await org_service.list_orgs(session)


@router.get("/search", response_model=Paged[OrgResponse])
async def search_orgs(
    query: Optional[str] = None,
    sort: str = "createdAt",
    order: str = "desc",
    page: int = 1,
    page_size: int = Query(10, alias="pageSize"),
    session: AsyncSession = Depends(get_session),
):
    """Search by name; sort by name or createdAt; pageSize is clamped to [1, 100]."""
    items, total, page, page_size = await org_service.search_orgs(
        session,
        query=query,
        sort=sort,
        order=order,
        page=page,
        page_size=page_size,
    )
    return Paged[OrgResponse](
        items=[OrgResponse.model_validate(org) for org in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/mine", response_model=list[OrgResponse])
async def list_my_orgs(
    caller: Caller = Depends(require_subject),
    session: AsyncSession = Depends(get_session),
):
    """Orgs the caller owns (Owner membership or legacy creator)."""
    return await org_service.list_owned_orgs(caller.subject, session)


@router.get("/{org_id}", response_model=OrgResponse)
async def get_org(
    org_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    return await org_service.get_org(org_id, session)


@router.post("", response_model=OrgResponse, status_code=201)
async def create_org(
    body: OrgCreateRequest,
    response: Response,
    caller: Caller = Depends(require_api_scope),
    session: AsyncSession = Depends(get_session),
):
    """Create an organization. The creator becomes its Owner."""
    org = await org_service.create_org(body, caller.subject, caller.name, session)
    response.headers["Location"] = f"/api/organizations/{org.id}"
    return org


@router.put("/{org_id}", response_model=OrgResponse)
async def update_org(
    body: OrgUpdateRequest,
    org: Organization = Depends(get_owned_org),
    session: AsyncSession = Depends(get_session),
):
    """Rename an organization (Owner only)."""
    return await org_service.update_org(org, body, session)


@router.delete("/{org_id}", status_code=204)
async def delete_org(
    org: Organization = Depends(get_owned_org),
    session: AsyncSession = Depends(get_session),
):
    """Delete an organization and all its members (Owner only)."""
    await org_service.delete_org(org, session)
