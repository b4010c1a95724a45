"""
Permission catalogue.

The catalogue is closed: every grantable capability is declared here as a
``"<resource>.<action>"`` key and nothing registers permissions at runtime.
Each action carries an access-level rank (read=1, write=2, delete=3) and a
level N on a resource group implies every permission of that group ranked
at or below N. :func:`permissions_at_or_below_level` is the only place that
mapping is computed.
"""

from __future__ import annotations

from dataclasses import dataclass

SUPER_ADMIN_SLUG = "super-admin"

PERMISSION_USERS_READ = "users.read"
PERMISSION_USERS_WRITE = "users.write"
PERMISSION_USERS_DELETE = "users.delete"

PERMISSION_ROLES_READ = "roles.read"
PERMISSION_ROLES_WRITE = "roles.write"
PERMISSION_ROLES_DELETE = "roles.delete"

# Never honoured for writes: activity logs are append-only.
PERMISSION_ACTIVITY_LOGS_READ = "activity_logs.read"
PERMISSION_ACTIVITY_LOGS_WRITE = "activity_logs.write"
PERMISSION_ACTIVITY_LOGS_DELETE = "activity_logs.delete"

ALL_PERMISSIONS: tuple[str, ...] = (
    PERMISSION_USERS_READ,
    PERMISSION_USERS_WRITE,
    PERMISSION_USERS_DELETE,
    PERMISSION_ROLES_READ,
    PERMISSION_ROLES_WRITE,
    PERMISSION_ROLES_DELETE,
    PERMISSION_ACTIVITY_LOGS_READ,
    PERMISSION_ACTIVITY_LOGS_WRITE,
    PERMISSION_ACTIVITY_LOGS_DELETE,
)

RESOURCE_GROUPS: dict[str, str] = {
    "users": "Users",
    "roles": "Roles",
    "activity_logs": "Activity Logs",
}
OTHER_GROUP = "Other"

ACTION_LEVELS: dict[str, int] = {"read": 1, "write": 2, "delete": 3}
MAX_ACCESS_LEVEL = 3

ACCESS_LEVEL_LABELS: dict[int, str] = {
    0: "None",
    1: "View",
    2: "View & Edit",
    3: "View, Edit & Delete",
}


@dataclass(frozen=True, slots=True)
class CataloguePermission:
    key: str

    @property
    def resource(self) -> str:
        return self.key.split(".", 1)[0]

    @property
    def group(self) -> str:
        return RESOURCE_GROUPS.get(self.resource, OTHER_GROUP)

    @property
    def action(self) -> str:
        return self.key.rsplit(".", 1)[-1]

    @property
    def label(self) -> str:
        return self.action.replace("_", " ").title()

    @property
    def access_level(self) -> int:
        return ACTION_LEVELS.get(self.action, 0)


CATALOGUE: tuple[CataloguePermission, ...] = tuple(CataloguePermission(key) for key in ALL_PERMISSIONS)
_BY_KEY: dict[str, CataloguePermission] = {permission.key: permission for permission in CATALOGUE}


def all_permission_keys() -> tuple[str, ...]:
    return ALL_PERMISSIONS


def is_known_permission(key: str) -> bool:
    return key in _BY_KEY


def get_permission(key: str) -> CataloguePermission | None:
    return _BY_KEY.get(key)


def access_level(key: str) -> int:
    permission = _BY_KEY.get(key)
    return permission.access_level if permission else 0


def permission_label(key: str) -> str | None:
    permission = _BY_KEY.get(key)
    return permission.label if permission else None


def groups() -> list[str]:
    """Distinct resource groups in declaration order."""
    seen: dict[str, None] = {}
    for permission in CATALOGUE:
        seen.setdefault(permission.group, None)
    return list(seen)


def grouped() -> dict[str, dict[str, CataloguePermission]]:
    result: dict[str, dict[str, CataloguePermission]] = {}
    for permission in CATALOGUE:
        result.setdefault(permission.group, {})[permission.key] = permission
    return result


def options() -> dict[str, str]:
    return {permission.key: permission.label for permission in CATALOGUE}


def permissions_at_or_below_level(group: str, level: int) -> list[str]:
    if level == 0:
        return []
    return [permission.key for permission in CATALOGUE if permission.group == group and permission.access_level <= level]
