from .common import CamelModel, Paged, ProblemDetails, Role  # noqa: F401
from .members import MemberAddRequest, MemberResponse, MemberUpdateRequest  # noqa: F401
from .organizations import OrgCreateRequest, OrgResponse, OrgUpdateRequest  # noqa: F401
