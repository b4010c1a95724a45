from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from backoffice.core.context import request_context
from backoffice.core.exceptions import ImmutableRecordError
from backoffice.models.activity_log import ActivityEvent, ActivityLog
from backoffice.models.user import User
from backoffice.schemas.role import RoleCreate
from backoffice.schemas.user import UserCreate, UserUpdate
from backoffice.services import role_service, user_service
from backoffice.services.activity_logger import json_safe, log_activity
from backoffice.services.audit_hooks import REDACTED, build_update_properties
from backoffice.services.auth_events import record_login, record_logout
from backoffice.services.lifecycle import Change


def _create_user(db, **overrides):
    data = {"name": "Jane Doe", "email": "jane@example.com", "password": "correct-horse"}
    data.update(overrides)
    return user_service.create_user(db, UserCreate(**data))


def test_log_activity_captures_request_context(db, super_admin) -> None:
    with request_context(user_id=super_admin.id, ip_address="203.0.113.9", user_agent="pytest-agent"):
        entry = log_activity(db, ActivityEvent.LOGIN, "Signed in", subject=super_admin, properties={"at": datetime(2024, 1, 1)})
    db.commit()

    assert entry.user_id == super_admin.id
    assert entry.subject_type == "User"
    assert entry.subject_id == super_admin.id
    assert entry.event == "login"
    assert entry.ip_address == "203.0.113.9"
    assert entry.user_agent == "pytest-agent"
    assert entry.properties == {"at": "2024-01-01T00:00:00"}
    assert entry.created_at is not None


def test_log_activity_without_context_is_system(db) -> None:
    entry = log_activity(db, "created", "Nightly import")
    db.commit()
    assert entry.is_system
    assert entry.subject_type is None and entry.subject_id is None
    assert entry.ip_address is None


def test_create_and_delete_are_always_logged(db, logs, super_admin) -> None:
    user = _create_user(db)
    created = logs(subject_type="User", subject_id=user.id)
    assert [entry.event for entry in created] == ["created"]
    assert created[0].description == "Created user: Jane Doe"
    assert created[0].properties is None

    user_service.delete_user(db, super_admin, user.id)
    events = [entry.event for entry in logs(subject_type="User", subject_id=user.id)]
    assert events == ["created", "deleted"]


def test_updating_name_logs_only_the_name(db, logs) -> None:
    user = _create_user(db)
    before = len(logs())

    user_service.update_user(db, user.id, UserUpdate(name="Jane Smith"))

    entries = logs()[before:]
    assert len(entries) == 1
    assert entries[0].event == ActivityEvent.UPDATED.value
    assert entries[0].description == "Updated user: Jane Smith"
    assert entries[0].properties == {"old": {"name": "Jane Doe"}, "new": {"name": "Jane Smith"}}


def test_bookkeeping_only_updates_are_suppressed(db, logs) -> None:
    user = _create_user(db)
    before = len(logs())

    user.remember_token = "token-123"
    user.updated_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
    db.commit()

    assert len(logs()) == before


def test_password_changes_are_redacted(db, logs) -> None:
    user = _create_user(db)
    old_hash = user.password
    user_service.update_user(db, user.id, UserUpdate(password="new-password-1"))

    entry = logs(subject_type="User", subject_id=user.id, event="updated")[-1]
    assert entry.properties == {"old": {"password": REDACTED}, "new": {"password": REDACTED}}
    assert old_hash not in str(entry.properties)


def test_role_updates_are_logged(db, logs) -> None:
    role = role_service.create_role(db, RoleCreate(name="Support"))
    role.description = "Front line"
    db.commit()

    entry = logs(subject_type="Role", subject_id=role.id, event="updated")[-1]
    assert entry.properties == {"old": {"description": None}, "new": {"description": "Front line"}}


def test_build_update_properties() -> None:
    change = Change(instance=None, old={"name": "a", "updated_at": 1}, new={"name": "b", "updated_at": 2})
    assert build_update_properties(change, frozenset({"updated_at"})) == {"old": {"name": "a"}, "new": {"name": "b"}}
    assert build_update_properties(Change(instance=None, new={"updated_at": 2}), frozenset({"updated_at"})) is None


def test_login_and_logout(db, super_admin, logs) -> None:
    with request_context(ip_address="198.51.100.7"):
        login = record_login(db, super_admin)
        logout = record_logout(db, super_admin)

    assert login.description == "User logged in"
    assert logout.description == "User logged out"
    assert [entry.event for entry in logs(user_id=super_admin.id)] == ["login", "logout"]
    assert login.ip_address == "198.51.100.7"
    assert login.properties is None


def test_activity_logs_are_immutable(db) -> None:
    entry = log_activity(db, ActivityEvent.CREATED, "Original")
    db.commit()

    entry.description = "Tampered"
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()

    stored = db.scalar(select(ActivityLog.description).where(ActivityLog.id == entry.id))
    assert stored == "Original"


def test_json_safe() -> None:
    assert json_safe({"when": datetime(2024, 5, 1), "tags": {"a"}, "event": ActivityEvent.LOGIN}) == {
        "when": "2024-05-01T00:00:00",
        "tags": ["a"],
        "event": "login",
    }


def test_old_values_are_read_back_when_expired_on_commit(engine, db, make_user) -> None:
    user = make_user("viewer", name="Jane")

    with sessionmaker(bind=engine, class_=Session)() as session:
        stored = session.get(User, user.id)
        session.commit()
        stored.name = "Janet"
        session.commit()

        entry = session.scalars(
            select(ActivityLog).where(
                ActivityLog.subject_type == "User",
                ActivityLog.subject_id == user.id,
                ActivityLog.event == ActivityEvent.UPDATED.value,
            )
        ).one()
        assert entry.properties == {"old": {"name": "Jane"}, "new": {"name": "Janet"}}


def test_assigning_the_role_relationship_is_logged(db, make_user, role_by_slug, logs) -> None:
    user = make_user("viewer")
    viewer = role_by_slug("viewer")
    admin = role_by_slug("admin")

    user.role = admin
    db.commit()

    entries = logs(subject_type="User", subject_id=user.id, event="updated")
    assert len(entries) == 1
    assert entries[0].properties == {"old": {"role_id": viewer.id}, "new": {"role_id": admin.id}}
    assert user.role_id == admin.id
