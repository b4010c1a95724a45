from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.core.config import get_settings
from backoffice.core.rbac import (
    CATALOGUE,
    MAX_ACCESS_LEVEL,
    SUPER_ADMIN_SLUG,
    groups,
    permissions_at_or_below_level,
)
from backoffice.core.security import get_password_hash
from backoffice.db.base import Base
from backoffice.models.permission import Permission
from backoffice.models.role import Role
from backoffice.models.user import User, UserStatus
from backoffice.services.audit_hooks import register_model_hooks

logger = logging.getLogger(__name__)

# (name, slug, description, access level per group, is_default)
DEFAULT_ROLES: list[tuple[str, str, str, int | None, bool]] = [
    ("Super Admin", SUPER_ADMIN_SLUG, "Unrestricted access to every resource.", None, False),
    ("Admin", "admin", "Full access to users, roles and activity logs.", MAX_ACCESS_LEVEL, False),
    ("Editor", "editor", "View and edit every resource.", 2, False),
    ("Viewer", "viewer", "Read-only access.", 1, True),
]


def bootstrap_database(db: Session) -> None:
    Base.metadata.create_all(bind=db.get_bind())
    register_model_hooks()
    seed_permissions(db)
    seed_roles(db)
    seed_admin_user(db)


def seed_permissions(db: Session) -> None:
    existing = set(db.scalars(select(Permission.name)))
    added = 0
    for permission in CATALOGUE:
        if permission.key in existing:
            continue
        db.add(
            Permission(
                name=permission.key,
                group=permission.group,
                description=f"{permission.label} {permission.group}",
            )
        )
        added += 1
    db.commit()
    if added:
        logger.info("Seeded %d permissions", added)


def _permissions_for_level(db: Session, level: int | None) -> list[Permission]:
    if level is None:
        return []
    names: list[str] = []
    for group in groups():
        names.extend(permissions_at_or_below_level(group, level))
    return list(db.scalars(select(Permission).where(Permission.name.in_(names)).order_by(Permission.id.asc())))


def seed_roles(db: Session) -> None:
    for name, slug, description, level, is_default in DEFAULT_ROLES:
        if db.scalar(select(Role.id).where(Role.slug == slug)) is not None:
            continue
        role = Role(name=name, slug=slug, description=description, is_default=is_default)
        role.permissions = _permissions_for_level(db, level)
        db.add(role)
        db.commit()
        logger.info("Seeded role %s", slug)


def seed_admin_user(db: Session) -> None:
    settings = get_settings()
    if db.scalar(select(User.id).where(User.email == settings.default_admin_email)) is not None:
        return

    super_admin = db.scalar(select(Role).where(Role.slug == SUPER_ADMIN_SLUG))
    admin = User(
        name=settings.default_admin_name,
        email=settings.default_admin_email,
        password=get_password_hash(settings.default_admin_password),
        status=UserStatus.ACTIVE.value,
        role_id=super_admin.id if super_admin else None,
    )
    db.add(admin)
    db.commit()
    logger.info("Seeded admin user %s", admin.email)
