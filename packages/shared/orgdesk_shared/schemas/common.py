from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class Role(str, Enum):
    OWNER = "Owner"
    MEMBER = "Member"


class CamelModel(BaseModel):
    """Wire models use camelCase field names; Python code uses snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Paged(CamelModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int


class ProblemDetails(BaseModel):
    """Error payload returned by every failing endpoint."""

    title: Optional[str] = None
    detail: Optional[str] = None
    status: Optional[int] = None
    errors: Optional[dict[str, list[str]]] = None
