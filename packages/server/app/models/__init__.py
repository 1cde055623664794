# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import CreatedAtMixin, UUIDMixin  # noqa: F401
from .organization import Organization  # noqa: F401
from .org_member import OrgMember  # noqa: F401
