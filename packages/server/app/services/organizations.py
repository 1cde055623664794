"""
Organization service: business logic for org CRUD and search.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.org_member import OrgMember
from app.models.organization import Organization
from orgdesk_shared.schemas.common import Role
from orgdesk_shared.schemas.organizations import OrgCreateRequest, OrgUpdateRequest

log = structlog.get_logger()

MAX_PAGE_SIZE = 100
# Keeps (page - 1) * page_size within a signed 64-bit OFFSET
MAX_PAGE = (2**63 - 1) // MAX_PAGE_SIZE
UNKNOWN_MEMBER_NAME = "Unknown"


def clamp_paging(page: int, page_size: int) -> tuple[int, int]:
    """page is within [1, MAX_PAGE]; page_size is within [1, MAX_PAGE_SIZE]."""
    return min(max(page, 1), MAX_PAGE), min(max(page_size, 1), MAX_PAGE_SIZE)


async def list_orgs(session: AsyncSession) -> list[Organization]:
    """All orgs, newest first."""
    result = await session.execute(
        select(Organization).order_by(Organization.created_at.desc())
    )
    return list(result.scalars().all())


async def search_orgs(
    session: AsyncSession,
    *,
    query: Optional[str] = None,
    sort: str = "createdAt",
    order: str = "desc",
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[Organization], int, int, int]:
    """Filter by name substring, sort, and page. Returns (items, total, page, page_size)."""
    page, page_size = clamp_paging(page, page_size)

    stmt = select(Organization)
    if query and query.strip():
        stmt = stmt.where(Organization.name.icontains(query.strip(), autoescape=True))

    total_result = await session.execute(
        select(func.count()).select_from(stmt.subquery())
    )
    total = total_result.scalar_one()

    descending = order.lower() == "desc"
    column = Organization.name if sort.lower() == "name" else Organization.created_at
    stmt = stmt.order_by(
        column.desc() if descending else column.asc(),
        Organization.id,
    )

    result = await session.execute(
        stmt.offset((page - 1) * page_size).limit(page_size)
    )
    return list(result.scalars().all()), total, page, page_size


async def get_org(org_id: uuid.UUID, session: AsyncSession) -> Organization:
    """Get an org by id; raises 404 if not found."""
    result = await session.execute(
        select(Organization).where(Organization.id == org_id)
    )
    org = result.scalar_one_or_none()
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


async def list_owned_orgs(
    subject: str, session: AsyncSession
) -> list[Organization]:
    """Orgs the subject owns, by Owner membership or as legacy creator."""
    owner_org_ids = (
        select(OrgMember.org_id)
        .where(OrgMember.user_sub == subject, OrgMember.role == Role.OWNER.value)
    )
    result = await session.execute(
        select(Organization)
        .where(
            or_(
                Organization.id.in_(owner_org_ids),
                Organization.created_by == subject,
            )
        )
        .order_by(Organization.created_at.desc())
    )
    return list(result.scalars().all())


async def create_org(
    req: OrgCreateRequest,
    creator_sub: Optional[str],
    creator_name: Optional[str],
    session: AsyncSession,
) -> Organization:
    """Create an org and make the creator its Owner, in one transaction."""
    org = Organization(
        name=req.name,
        created_by=creator_sub,
        created_by_name=creator_name,
    )
    session.add(org)
    await session.flush()

    if creator_sub:
        existing = await session.execute(
            select(OrgMember.id).where(
                OrgMember.org_id == org.id,
                OrgMember.user_sub == creator_sub,
            )
        )
        if existing.first() is None:
            session.add(
                OrgMember(
                    org_id=org.id,
                    user_sub=creator_sub,
                    user_name=creator_name or UNKNOWN_MEMBER_NAME,
                    role=Role.OWNER.value,
                )
            )
            await session.flush()

    log.info("org.created", org_id=str(org.id), creator=creator_sub)
    return org


async def update_org(
    org: Organization,
    req: OrgUpdateRequest,
    session: AsyncSession,
) -> Organization:
    """Rename an org."""
    org.name = req.name
    session.add(org)
    await session.flush()

    log.info("org.updated", org_id=str(org.id))
    return org


async def delete_org(org: Organization, session: AsyncSession) -> None:
    """Delete an org together with all of its members."""
    await session.execute(delete(OrgMember).where(OrgMember.org_id == org.id))
    await session.delete(org)
    await session.flush()

    log.info("org.deleted", org_id=str(org.id))
