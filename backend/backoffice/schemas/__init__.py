from backoffice.schemas.activity_log import ActivityLogRead
from backoffice.schemas.common import HealthResponse, ORMModel
from backoffice.schemas.role import RoleCreate, RoleRead, RoleSummaryRead, RoleUpdate
from backoffice.schemas.user import UserCreate, UserRead, UserUpdate

__all__ = [
    "ActivityLogRead",
    "HealthResponse",
    "ORMModel",
    "RoleCreate",
    "RoleRead",
    "RoleSummaryRead",
    "RoleUpdate",
    "UserCreate",
    "UserRead",
    "UserUpdate",
]
