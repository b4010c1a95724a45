from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.core.rbac import SUPER_ADMIN_SLUG
from backoffice.core.security import get_password_hash
from backoffice.db.base import Base
from backoffice.db.bootstrap import seed_permissions, seed_roles
from backoffice.models.activity_log import ActivityLog
from backoffice.models.role import Role
from backoffice.models.user import User, UserStatus
from backoffice.services.audit_hooks import register_model_hooks


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, class_=Session, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory) -> Iterator[Session]:
    register_model_hooks()
    with session_factory() as session:
        seed_permissions(session)
        seed_roles(session)
        yield session


@pytest.fixture()
def role_by_slug(db: Session):
    def lookup(slug: str) -> Role:
        return db.scalar(select(Role).where(Role.slug == slug))

    return lookup


@pytest.fixture()
def make_user(db: Session, role_by_slug):
    counter = {"value": 0}

    def factory(role_slug: str | None = None, status: str = UserStatus.ACTIVE.value, name: str | None = None) -> User:
        counter["value"] += 1
        role = role_by_slug(role_slug) if role_slug else None
        user = User(
            name=name or f"User {counter['value']}",
            email=f"user{counter['value']}@example.com",
            password=get_password_hash("secret-password"),
            status=status,
            role_id=role.id if role else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture()
def super_admin(make_user) -> User:
    return make_user(SUPER_ADMIN_SLUG, name="Root")


@pytest.fixture()
def logs(db: Session):
    def fetch(**filters) -> list[ActivityLog]:
        query = select(ActivityLog).order_by(ActivityLog.id.asc())
        for key, value in filters.items():
            query = query.where(getattr(ActivityLog, key) == value)
        return list(db.scalars(query))

    return fetch
