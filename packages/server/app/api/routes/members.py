"""
Organization membership endpoints.

GET    /api/organizations/{orgId}/members              - List members
POST   /api/organizations/{orgId}/members              - Add a member (Owner only)
PUT    /api/organizations/{orgId}/members/{memberId}   - Change a member's role (Owner only)
DELETE /api/organizations/{orgId}/members/{memberId}   - Remove a member (Owner only)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Caller, require_api_scope, require_subject
from app.core.database import get_session
from app.services import membership as membership_service
from orgdesk_shared.schemas.members import (
    MemberAddRequest,
    MemberResponse,
    MemberUpdateRequest,
)

router = APIRouter()


async def require_org_owner(
    org_id: uuid.UUID,
    caller: Caller = Depends(require_subject),
    session: AsyncSession = Depends(get_session),
) -> Caller:
    """Require the caller to own the org. Unknown orgs have no owners (403)."""
    await membership_service.require_owner(org_id, caller.subject, session)
    return caller


@router.get("", response_model=list[MemberResponse])
async def list_members(
    org_id: uuid.UUID,
    caller: Caller = Depends(require_api_scope),
    session: AsyncSession = Depends(get_session),
):
    """List an organization's members, newest first."""
    return await membership_service.list_members(org_id, session)


@router.post("", response_model=MemberResponse, status_code=201)
async def add_member(
    org_id: uuid.UUID,
    body: MemberAddRequest,
    response: Response,
    caller: Caller = Depends(require_org_owner),
    session: AsyncSession = Depends(get_session),
):
    """Add a member with role Owner or Member (Owner only)."""
    member = await membership_service.add_member(org_id, body, session)
    response.headers["Location"] = f"/api/organizations/{org_id}/members"
    return member


@router.put("/{member_id}", status_code=204)
async def update_member(
    org_id: uuid.UUID,
    member_id: uuid.UUID,
    body: MemberUpdateRequest,
    caller: Caller = Depends(require_org_owner),
    session: AsyncSession = Depends(get_session),
):
    """Change a member's role (Owner only). The last Owner cannot be demoted."""
    await membership_service.change_role(org_id, member_id, body.role, session)


@router.delete("/{member_id}", status_code=204)
async def remove_member(
    org_id: uuid.UUID,
    member_id: uuid.UUID,
    caller: Caller = Depends(require_org_owner),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member (Owner only). The last Owner cannot be removed."""
    await membership_service.remove_member(org_id, member_id, session)
