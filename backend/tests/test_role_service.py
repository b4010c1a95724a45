from __future__ import annotations

import pytest
from sqlalchemy import func, select

from backoffice.core.exceptions import ConflictError, IntegrityError, NotFoundError, ValidationError
from backoffice.core.rbac import PERMISSION_ROLES_READ, PERMISSION_USERS_READ, SUPER_ADMIN_SLUG
from backoffice.models.activity_log import ActivityEvent
from backoffice.models.permission import Permission
from backoffice.models.role import Role, role_permission
from backoffice.schemas.role import RoleCreate, RoleUpdate
from backoffice.services import role_service


def _ids(db, *names: str) -> set[int]:
    return set(db.scalars(select(Permission.id).where(Permission.name.in_(names))))


def test_create_role_derives_slug(db) -> None:
    role = role_service.create_role(db, RoleCreate(name="Billing Team", description="Invoices"))
    assert role.slug == "billing-team"
    assert role.is_default is False
    assert role_service.get_role_by_slug(db, "billing-team").id == role.id


def test_create_role_rejects_duplicates(db) -> None:
    with pytest.raises(ValidationError) as slug_error:
        role_service.create_role(db, RoleCreate(name="Another Viewer", slug="viewer"))
    assert slug_error.value.field == "slug"

    with pytest.raises(ValidationError) as name_error:
        role_service.create_role(db, RoleCreate(name="Viewer", slug="viewer-two"))
    assert name_error.value.field == "name"


def test_update_role_excludes_itself_from_uniqueness(db, role_by_slug) -> None:
    viewer = role_by_slug("viewer")
    updated = role_service.update_role(db, viewer.id, RoleUpdate(name="Viewer", description="Read only"))
    assert updated.description == "Read only"

    with pytest.raises(ValidationError):
        role_service.update_role(db, viewer.id, RoleUpdate(slug="editor"))
    with pytest.raises(NotFoundError):
        role_service.update_role(db, 9999, RoleUpdate(name="Ghost"))


def test_delete_role_guards(db, make_user, role_by_slug, super_admin) -> None:
    with pytest.raises(ConflictError) as super_admin_error:
        role_service.delete_role(db, super_admin, role_by_slug(SUPER_ADMIN_SLUG).id)
    assert super_admin_error.value.reason == "super_admin_role"

    editor = role_by_slug("editor")
    make_user("editor")
    with pytest.raises(ConflictError) as users_error:
        role_service.delete_role(db, super_admin, editor.id)
    assert users_error.value.reason == "role_has_users"
    assert role_by_slug("editor") is not None


def test_delete_role_requires_delete_permission(db, make_user, role_by_slug) -> None:
    role = role_service.create_role(db, RoleCreate(name="Unused"))
    with pytest.raises(ConflictError) as error:
        role_service.delete_role(db, make_user("editor"), role.id)
    assert error.value.reason == "missing_permission"
    assert role_by_slug("unused") is not None

    with pytest.raises(ConflictError):
        role_service.delete_role(db, None, role.id)

    role_service.delete_role(db, make_user("admin"), role.id)
    assert role_by_slug("unused") is None


def test_delete_role_cascades_associations(db, super_admin) -> None:
    role = role_service.create_role(db, RoleCreate(name="Temporary"))
    role_service.sync_permissions(db, role.id, _ids(db, PERMISSION_USERS_READ))
    role_service.delete_role(db, super_admin, role.id)

    assert db.scalar(select(Role.id).where(Role.slug == "temporary")) is None
    remaining = db.scalar(select(func.count()).select_from(role_permission).where(role_permission.c.role_id == role.id))
    assert remaining == 0


def test_sync_permissions_replaces_the_whole_set(db, logs) -> None:
    role = role_service.create_role(db, RoleCreate(name="Auditor"))
    role_service.sync_permissions(db, role.id, _ids(db, PERMISSION_USERS_READ))
    role = role_service.sync_permissions(db, role.id, _ids(db, PERMISSION_ROLES_READ))
    assert role.permission_names == {PERMISSION_ROLES_READ}

    entries = logs(subject_type="Role", subject_id=role.id, event=ActivityEvent.UPDATED.value)
    assert entries[-1].properties == {
        "old": {"permissions": [PERMISSION_USERS_READ]},
        "new": {"permissions": [PERMISSION_ROLES_READ]},
    }

    before = len(logs())
    role_service.sync_permissions(db, role.id, _ids(db, PERMISSION_ROLES_READ))
    assert len(logs()) == before


def test_sync_permissions_rejects_unknown_ids(db) -> None:
    role = role_service.create_role(db, RoleCreate(name="Broken"))
    with pytest.raises(IntegrityError) as error:
        role_service.sync_permissions(db, role.id, {9999})
    assert error.value.unknown_ids == (9999,)
    assert role_service.role_permission_count(db, role.id) == 0


def test_update_role_access_levels(db) -> None:
    role = role_service.create_role(db, RoleCreate(name="Leveled"))
    role = role_service.update_role_access_levels(db, role.id, {"Users": 3, "Roles": "1", "Activity Logs": 9})
    assert role.permission_names == {"users.read", "users.write", "users.delete", "roles.read"}


def test_list_roles_reports_counts(db, make_user) -> None:
    make_user("viewer")
    make_user("viewer")
    summaries = {summary.role.slug: summary for summary in role_service.list_roles(db)}
    assert summaries["viewer"].user_count == 2
    assert summaries["viewer"].permission_count == 3
    assert summaries["admin"].permission_count == 9
    assert summaries[SUPER_ADMIN_SLUG].permission_count == 0
    assert role_service.role_user_count(db, summaries["viewer"].role.id) == 2


def test_default_role(db) -> None:
    assert role_service.get_default_role(db).slug == "viewer"
    assert role_service.slugify("  Team Leads!  ") == "team-leads"
