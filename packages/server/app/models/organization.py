"""Organization model."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Organization(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True, max_length=200)
    # Creator identity; also the implicit Owner for orgs that predate membership rows
    created_by: Optional[str] = Field(default=None, index=True, max_length=200)
    created_by_name: Optional[str] = Field(default=None, max_length=200)
