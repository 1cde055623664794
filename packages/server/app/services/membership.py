"""
Membership service: organization ownership checks and member management.

Ownership is a two-tier lookup: an Owner row in ``org_members`` is
authoritative, and an organization's ``created_by`` still counts as an
implicit Owner for organizations created before membership rows existed.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import is_foreign_key_violation
from app.models.org_member import OrgMember
from app.models.organization import Organization
from orgdesk_shared.schemas.common import Role
from orgdesk_shared.schemas.members import MemberAddRequest

log = structlog.get_logger()


async def is_owner(
    org_id: uuid.UUID, subject: str, session: AsyncSession
) -> bool:
    """True if the subject holds an Owner row, or created the org (legacy fallback)."""
    result = await session.execute(
        select(OrgMember.id)
        .where(
            OrgMember.org_id == org_id,
            OrgMember.user_sub == subject,
            OrgMember.role == Role.OWNER.value,
        )
        .limit(1)
    )
    if result.first() is not None:
        return True

    result = await session.execute(
        select(Organization.created_by).where(Organization.id == org_id)
    )
    legacy_owner = result.scalar_one_or_none()
    return legacy_owner is not None and legacy_owner == subject


async def require_owner(
    org_id: uuid.UUID, subject: Optional[str], session: AsyncSession
) -> None:
    """Raise 403 unless the subject may manage the organization."""
    if not subject or not await is_owner(org_id, subject, session):
        raise HTTPException(
            status_code=403,
            detail="Only an Owner of this organization can perform this action",
        )


async def _lock_org(org_id: uuid.UUID, session: AsyncSession) -> None:
    """
    Take a row lock on the organization for the rest of the transaction.

    Owner-count checks and the mutation that follows run under this lock, so
    concurrent demotions/removals within one org are serialized.
    """
    await session.execute(
        select(Organization.id).where(Organization.id == org_id).with_for_update()
    )


async def count_owners(org_id: uuid.UUID, session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(OrgMember)
        .where(OrgMember.org_id == org_id, OrgMember.role == Role.OWNER.value)
    )
    return result.scalar_one()


async def _get_member(
    org_id: uuid.UUID, member_id: uuid.UUID, session: AsyncSession
) -> OrgMember:
    result = await session.execute(
        select(OrgMember).where(OrgMember.id == member_id, OrgMember.org_id == org_id)
    )
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


async def list_members(
    org_id: uuid.UUID, session: AsyncSession
) -> list[OrgMember]:
    """Members of an org, newest first. Unknown orgs simply have no members."""
    result = await session.execute(
        select(OrgMember)
        .where(OrgMember.org_id == org_id)
        .order_by(OrgMember.created_at.desc())
    )
    return list(result.scalars().all())


async def add_member(
    org_id: uuid.UUID,
    req: MemberAddRequest,
    session: AsyncSession,
) -> OrgMember:
    """Add a member. One row per (org, subject); duplicates are a 409."""
    existing = await session.execute(
        select(OrgMember.id).where(
            OrgMember.org_id == org_id,
            OrgMember.user_sub == req.user_sub,
        )
    )
    if existing.first() is not None:
        raise HTTPException(status_code=409, detail="Member already exists.")

    member = OrgMember(
        org_id=org_id,
        user_sub=req.user_sub,
        user_name=req.user_name,
        role=req.role.value,
    )
    session.add(member)
    try:
        await session.flush()
    except IntegrityError as exc:
        # The org was deleted underneath us
        if is_foreign_key_violation(exc):
            raise HTTPException(status_code=404, detail="Organization not found")
        # Lost a race with a concurrent insert of the same subject
        raise HTTPException(status_code=409, detail="Member already exists.")

    log.info(
        "member.added",
        org_id=str(org_id),
        member_id=str(member.id),
        user_sub=req.user_sub,
        role=member.role,
    )
    return member


async def change_role(
    org_id: uuid.UUID,
    member_id: uuid.UUID,
    new_role: Role,
    session: AsyncSession,
) -> OrgMember:
    """Change a member's role. The last Owner cannot be demoted."""
    await _lock_org(org_id, session)
    member = await _get_member(org_id, member_id, session)

    if member.role == Role.OWNER.value and new_role != Role.OWNER:
        if await count_owners(org_id, session) <= 1:
            raise HTTPException(status_code=409, detail="Cannot demote the last Owner.")

    previous = member.role
    member.role = new_role.value
    session.add(member)
    await session.flush()

    log.info(
        "member.role_changed",
        org_id=str(org_id),
        member_id=str(member_id),
        previous=previous,
        role=member.role,
    )
    return member


async def remove_member(
    org_id: uuid.UUID, member_id: uuid.UUID, session: AsyncSession
) -> None:
    """Remove a member. The last Owner cannot be removed."""
    await _lock_org(org_id, session)
    member = await _get_member(org_id, member_id, session)

    if member.role == Role.OWNER.value:
        if await count_owners(org_id, session) <= 1:
            raise HTTPException(status_code=409, detail="Cannot delete the last Owner.")

    await session.delete(member)
    await session.flush()
    log.info("member.removed", org_id=str(org_id), member_id=str(member_id))
