from backoffice.models.activity_log import ActivityEvent, ActivityLog
from backoffice.models.permission import Permission
from backoffice.models.role import Role, role_permission
from backoffice.models.user import User, UserStatus

__all__ = [
    "ActivityEvent",
    "ActivityLog",
    "Permission",
    "Role",
    "User",
    "UserStatus",
    "role_permission",
]
