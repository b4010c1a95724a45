"""
Authorization engine.

``can`` evaluates the super-admin bypass first, before any permission
lookup, then falls back to membership in the role's permission set. A user
without a role is denied everything. Decisions are plain booleans; callers
decide how to surface a denial. Only the already-loaded role and its
permissions are read.
"""

from __future__ import annotations

from collections.abc import Iterable

from backoffice.core.metrics import authorization_decisions_total
from backoffice.models.user import User


def is_super_admin(user: User | None) -> bool:
    return user is not None and user.is_super_admin


def get_all_permissions(user: User | None) -> set[str]:
    if user is None or user.role is None:
        return set()
    return user.role.permission_names


def can(user: User | None, permission: str) -> bool:
    if user is None or user.role is None:
        authorization_decisions_total.labels(result="denied").inc()
        return False
    if user.role.is_super_admin:
        authorization_decisions_total.labels(result="bypass").inc()
        return True
    allowed = permission in user.role.permission_names
    authorization_decisions_total.labels(result="allowed" if allowed else "denied").inc()
    return allowed


def can_any(user: User | None, permissions: Iterable[str]) -> bool:
    if is_super_admin(user):
        return True
    return any(can(user, permission) for permission in permissions)


def can_all(user: User | None, permissions: Iterable[str]) -> bool:
    if is_super_admin(user):
        return True
    return all(can(user, permission) for permission in permissions)


def can_access_admin(user: User | None) -> bool:
    return user is not None and user.is_active
