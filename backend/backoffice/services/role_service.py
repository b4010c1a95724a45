from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from backoffice.core.exceptions import ConflictError, IntegrityError, NotFoundError, ValidationError
from backoffice.core.rbac import is_known_permission
from backoffice.models.activity_log import ActivityEvent
from backoffice.models.permission import Permission
from backoffice.models.role import Role, role_permission
from backoffice.models.user import User
from backoffice.schemas.role import RoleCreate, RoleUpdate
from backoffice.services.access_levels import levels_to_permission_ids
from backoffice.services.activity_logger import log_activity
from backoffice.services.policies import role_policy

logger = logging.getLogger(__name__)

_slug_pattern = re.compile(r"[^a-z0-9]+")


@dataclass(slots=True)
class RoleSummary:
    role: Role
    permission_count: int
    user_count: int


def slugify(value: str) -> str:
    return _slug_pattern.sub("-", value.lower()).strip("-")


def get_role(db: Session, role_id: int) -> Role | None:
    return db.scalar(select(Role).where(Role.id == role_id).options(selectinload(Role.permissions)))


def get_role_by_slug(db: Session, slug: str) -> Role | None:
    return db.scalar(select(Role).where(Role.slug == slug).options(selectinload(Role.permissions)))


def get_default_role(db: Session) -> Role | None:
    return db.scalar(select(Role).where(Role.is_default.is_(True)).order_by(Role.id.asc()).limit(1))


def _require_role(db: Session, role_id: int) -> Role:
    role = get_role(db, role_id)
    if not role:
        raise NotFoundError("Role not found.")
    return role


def _ensure_unique(db: Session, name: str, slug: str, exclude_id: int | None = None) -> None:
    name_query = select(Role.id).where(Role.name == name)
    slug_query = select(Role.id).where(Role.slug == slug)
    if exclude_id is not None:
        name_query = name_query.where(Role.id != exclude_id)
        slug_query = slug_query.where(Role.id != exclude_id)

    if db.scalar(slug_query) is not None:
        raise ValidationError("Slug already exists.", field="slug")
    if db.scalar(name_query) is not None:
        raise ValidationError("Name already exists.", field="name")


def create_role(db: Session, payload: RoleCreate) -> Role:
    slug = payload.slug or slugify(payload.name)
    if not slug:
        raise ValidationError("Slug is required.", field="slug")
    _ensure_unique(db, payload.name, slug)

    role = Role(
        name=payload.name,
        slug=slug,
        description=payload.description,
        is_default=payload.is_default,
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    logger.info("Role created: %s", role.slug)
    return role


def update_role(db: Session, role_id: int, payload: RoleUpdate) -> Role:
    role = _require_role(db, role_id)
    changes = payload.model_dump(exclude_unset=True)
    name = changes.get("name") or role.name
    slug = changes.get("slug") or role.slug
    _ensure_unique(db, name, slug, exclude_id=role.id)

    for key, value in changes.items():
        if key in {"name", "slug"} and not value:
            continue
        if key == "is_default" and value is None:
            continue
        setattr(role, key, value)
    db.commit()
    db.refresh(role)
    logger.info("Role updated: %s", role.slug)
    return role


def delete_role(db: Session, actor: User | None, role_id: int) -> None:
    role = _require_role(db, role_id)
    decision = role_policy.delete(actor, role, user_count=role_user_count(db, role.id))
    if not decision:
        raise ConflictError(decision.message or "Role cannot be deleted.", reason=decision.reason)

    slug = role.slug
    db.delete(role)
    db.commit()
    logger.info("Role deleted: %s", slug)


def sync_permissions(db: Session, role_id: int, permission_ids: Iterable[int]) -> Role:
    """Replace the role's whole permission set in one transaction."""
    role = _require_role(db, role_id)
    requested = set(permission_ids)

    permissions: list[Permission] = []
    if requested:
        permissions = list(db.scalars(select(Permission).where(Permission.id.in_(requested)).order_by(Permission.id.asc())))
    valid_ids = {permission.id for permission in permissions if is_known_permission(permission.name)}
    unknown_ids = requested - valid_ids
    if unknown_ids:
        raise IntegrityError(f"Unknown permission ids: {sorted(unknown_ids)}.", unknown_ids=unknown_ids)

    old_names = sorted(role.permission_names)
    role.permissions = permissions
    new_names = sorted(permission.name for permission in permissions)

    if old_names != new_names:
        log_activity(
            db,
            ActivityEvent.UPDATED,
            f"Updated role permissions: {role.name}",
            subject=role,
            properties={"old": {"permissions": old_names}, "new": {"permissions": new_names}},
        )
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(role)
    logger.info("Role %s synced to %d permissions", role.slug, len(new_names))
    return role


def update_role_access_levels(db: Session, role_id: int, levels: Mapping[str, Any]) -> Role:
    return sync_permissions(db, role_id, levels_to_permission_ids(db, levels))


def role_permission_count(db: Session, role_id: int) -> int:
    return db.scalar(select(func.count()).select_from(role_permission).where(role_permission.c.role_id == role_id)) or 0


def role_user_count(db: Session, role_id: int) -> int:
    return db.scalar(select(func.count()).select_from(User).where(User.role_id == role_id)) or 0


def list_roles(db: Session) -> list[RoleSummary]:
    permission_counts = (
        select(role_permission.c.role_id, func.count().label("total"))
        .group_by(role_permission.c.role_id)
        .subquery()
    )
    user_counts = select(User.role_id, func.count().label("total")).group_by(User.role_id).subquery()
    rows = db.execute(
        select(Role, func.coalesce(permission_counts.c.total, 0), func.coalesce(user_counts.c.total, 0))
        .outerjoin(permission_counts, permission_counts.c.role_id == Role.id)
        .outerjoin(user_counts, user_counts.c.role_id == Role.id)
        .order_by(Role.name.asc())
    ).all()
    return [RoleSummary(role=role, permission_count=permissions, user_count=users) for role, permissions, users in rows]
