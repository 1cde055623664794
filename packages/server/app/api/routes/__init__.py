"""
API router.

All organization endpoints are mounted under /api/organizations.
"""

from fastapi import APIRouter

from . import identity, members, organizations

router = APIRouter()

router.include_router(organizations.router, prefix="/organizations", tags=["Organizations"])
router.include_router(members.router, prefix="/organizations/{org_id}/members", tags=["Members"])
router.include_router(identity.router)
