from backoffice.models import ActivityLog, Permission, Role, User  # noqa: F401
from backoffice.models.base import Base

__all__ = ["Base"]
