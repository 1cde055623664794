"""
Organization membership schemas.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from .common import CamelModel, Role

SUBJECT_MAX_LENGTH = 200


class MemberAddRequest(CamelModel):
    """Grant a user a role in an organization."""
    user_sub: str = Field(..., min_length=1, max_length=SUBJECT_MAX_LENGTH)
    user_name: str = Field(..., min_length=1, max_length=SUBJECT_MAX_LENGTH)
    role: Role


class MemberUpdateRequest(CamelModel):
    role: Role


class MemberResponse(CamelModel):
    id: uuid.UUID
    org_id: uuid.UUID
    user_sub: str
    user_name: str
    role: Role
    created_at: datetime
