"""
Organization request/response schemas.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from .common import CamelModel

NAME_MAX_LENGTH = 200


class OrgCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH, description="Organization display name")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name must not be blank")
        return value.strip()


class OrgUpdateRequest(OrgCreateRequest):
    pass


class OrgResponse(CamelModel):
    id: uuid.UUID
    name: str
    created_at: datetime
    created_by: Optional[str] = None
    created_by_name: Optional[str] = None
