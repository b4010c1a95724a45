"""
Record-level policies layered over the authorization engine.

Each policy combines ``can`` with rules about the specific record. The
super-admin bypass is one-directional: a super-admin may act on anything,
but holding ``users.write`` or ``roles.write`` never lets a regular admin
touch a super-admin user or the super-admin role.
"""

from __future__ import annotations

from dataclasses import dataclass

from backoffice.core.rbac import (
    PERMISSION_ACTIVITY_LOGS_DELETE,
    PERMISSION_ACTIVITY_LOGS_READ,
    PERMISSION_ROLES_DELETE,
    PERMISSION_ROLES_READ,
    PERMISSION_ROLES_WRITE,
    PERMISSION_USERS_DELETE,
    PERMISSION_USERS_READ,
    PERMISSION_USERS_WRITE,
)
from backoffice.models.activity_log import ActivityLog
from backoffice.models.role import Role
from backoffice.models.user import User
from backoffice.services.authorization import can, is_super_admin

REASON_MISSING_PERMISSION = "missing_permission"
REASON_SELF_DELETE = "self_delete"
REASON_SUPER_ADMIN_TARGET = "super_admin_target"
REASON_SUPER_ADMIN_ROLE = "super_admin_role"
REASON_ROLE_HAS_USERS = "role_has_users"
REASON_IMMUTABLE = "immutable"


@dataclass(frozen=True, slots=True)
class Decision:
    allowed: bool
    reason: str | None = None
    message: str | None = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls) -> Decision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, message: str) -> Decision:
        return cls(allowed=False, reason=reason, message=message)


def _requires(actor: User | None, permission: str) -> Decision:
    if can(actor, permission):
        return Decision.allow()
    return Decision.deny(REASON_MISSING_PERMISSION, f"Missing permission '{permission}'.")


def _is_same_user(actor: User | None, target: User) -> bool:
    return actor is not None and actor.id is not None and actor.id == target.id


class UserPolicy:
    def view_any(self, actor: User | None) -> Decision:
        return _requires(actor, PERMISSION_USERS_READ)

    def view(self, actor: User | None, target: User) -> Decision:
        if _is_same_user(actor, target):
            return Decision.allow()
        return _requires(actor, PERMISSION_USERS_READ)

    def create(self, actor: User | None) -> Decision:
        return _requires(actor, PERMISSION_USERS_WRITE)

    def update(self, actor: User | None, target: User) -> Decision:
        if _is_same_user(actor, target):
            return Decision.allow()
        if target.is_super_admin and not is_super_admin(actor):
            return Decision.deny(REASON_SUPER_ADMIN_TARGET, "Only a super-admin may edit a super-admin user.")
        return _requires(actor, PERMISSION_USERS_WRITE)

    def delete(self, actor: User | None, target: User) -> Decision:
        if _is_same_user(actor, target):
            return Decision.deny(REASON_SELF_DELETE, "Users cannot delete their own account.")
        if target.is_super_admin and not is_super_admin(actor):
            return Decision.deny(REASON_SUPER_ADMIN_TARGET, "Only a super-admin may delete a super-admin user.")
        return _requires(actor, PERMISSION_USERS_DELETE)

    def delete_any(self, actor: User | None) -> Decision:
        return _requires(actor, PERMISSION_USERS_DELETE)

    def restore(self, actor: User | None, target: User) -> Decision:
        return _requires(actor, PERMISSION_USERS_WRITE)

    def force_delete(self, actor: User | None, target: User) -> Decision:
        return Decision.deny(REASON_IMMUTABLE, "Users cannot be force-deleted.")


class RolePolicy:
    def view_any(self, actor: User | None) -> Decision:
        return _requires(actor, PERMISSION_ROLES_READ)

    def view(self, actor: User | None, role: Role) -> Decision:
        return _requires(actor, PERMISSION_ROLES_READ)

    def create(self, actor: User | None) -> Decision:
        return _requires(actor, PERMISSION_ROLES_WRITE)

    def update(self, actor: User | None, role: Role) -> Decision:
        if role.is_super_admin and not is_super_admin(actor):
            return Decision.deny(REASON_SUPER_ADMIN_TARGET, "Only a super-admin may edit the super-admin role.")
        return _requires(actor, PERMISSION_ROLES_WRITE)

    def delete(self, actor: User | None, role: Role, user_count: int | None = None) -> Decision:
        if role.is_super_admin:
            return Decision.deny(REASON_SUPER_ADMIN_ROLE, "The super-admin role cannot be deleted.")
        if user_count is None:
            user_count = len(role.users)
        if user_count > 0:
            return Decision.deny(REASON_ROLE_HAS_USERS, "Roles with assigned users cannot be deleted.")
        return _requires(actor, PERMISSION_ROLES_DELETE)

    def delete_any(self, actor: User | None) -> Decision:
        return _requires(actor, PERMISSION_ROLES_DELETE)

    def restore(self, actor: User | None, role: Role) -> Decision:
        return _requires(actor, PERMISSION_ROLES_WRITE)

    def force_delete(self, actor: User | None, role: Role) -> Decision:
        return Decision.deny(REASON_IMMUTABLE, "Roles cannot be force-deleted.")


class ActivityLogPolicy:
    def view_any(self, actor: User | None) -> Decision:
        return _requires(actor, PERMISSION_ACTIVITY_LOGS_READ)

    def view(self, actor: User | None, entry: ActivityLog) -> Decision:
        return _requires(actor, PERMISSION_ACTIVITY_LOGS_READ)

    def create(self, actor: User | None) -> Decision:
        return Decision.deny(REASON_IMMUTABLE, "Activity logs are recorded by the system only.")

    def update(self, actor: User | None, entry: ActivityLog) -> Decision:
        return Decision.deny(REASON_IMMUTABLE, "Activity logs are immutable.")

    def delete(self, actor: User | None, entry: ActivityLog) -> Decision:
        return _requires(actor, PERMISSION_ACTIVITY_LOGS_DELETE)

    def delete_any(self, actor: User | None) -> Decision:
        return _requires(actor, PERMISSION_ACTIVITY_LOGS_DELETE)

    def restore(self, actor: User | None, entry: ActivityLog) -> Decision:
        return Decision.deny(REASON_IMMUTABLE, "Activity logs cannot be restored.")

    def force_delete(self, actor: User | None, entry: ActivityLog) -> Decision:
        return Decision.deny(REASON_IMMUTABLE, "Activity logs cannot be force-deleted.")


user_policy = UserPolicy()
role_policy = RolePolicy()
activity_log_policy = ActivityLogPolicy()
