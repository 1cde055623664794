"""Organization membership model."""

import uuid

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class OrgMember(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "org_members"
    __table_args__ = (
        UniqueConstraint("org_id", "user_sub", name="uq_org_members_org_id_user_sub"),
    )

    org_id: uuid.UUID = Field(
        foreign_key="organizations.id",
        ondelete="CASCADE",
        nullable=False,
        index=True,
    )
    user_sub: str = Field(nullable=False, max_length=200)
    user_name: str = Field(nullable=False, max_length=200)
    role: str = Field(nullable=False, default="Member", max_length=20)  # Owner | Member
