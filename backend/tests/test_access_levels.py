from __future__ import annotations

import itertools

import pytest
from sqlalchemy import select

from backoffice.core import rbac
from backoffice.models.permission import Permission
from backoffice.services.access_levels import (
    access_level_field_name,
    levels_from_form,
    levels_to_form,
    levels_to_permission_ids,
    parse_level,
    permission_names_from_levels,
    permissions_to_levels,
)


def test_field_names() -> None:
    assert access_level_field_name("Users") == "access_level_users"
    assert access_level_field_name("Activity Logs") == "access_level_activity_logs"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(0, 0), (3, 3), ("2", 2), (" 1 ", 1), (4, 0), (-1, 0), ("abc", 0), (None, 0), (True, 0), (2.5, 0)],
)
def test_parse_level_fails_closed(raw, expected) -> None:
    assert parse_level(raw) == expected


def test_empty_permission_set_covers_every_group(db) -> None:
    assert permissions_to_levels(db, []) == {"Users": 0, "Roles": 0, "Activity Logs": 0}


def test_round_trip_for_every_level_map(db) -> None:
    groups = rbac.groups()
    for combination in itertools.product(range(4), repeat=len(groups)):
        levels = dict(zip(groups, combination))
        assert permissions_to_levels(db, levels_to_permission_ids(db, levels)) == levels


def test_unknown_groups_and_bad_levels_grant_nothing(db) -> None:
    assert levels_to_permission_ids(db, {"Reports": 3}) == set()
    assert levels_to_permission_ids(db, {"Users": 7}) == set()
    assert permission_names_from_levels({"Users": "1", "Roles": "9"}) == [rbac.PERMISSION_USERS_READ]


def test_levels_use_highest_held_permission(db) -> None:
    ids = db.scalars(select(Permission.id).where(Permission.name == rbac.PERMISSION_ROLES_DELETE))
    assert permissions_to_levels(db, ids)["Roles"] == 3


def test_form_round_trip() -> None:
    form = levels_to_form({"Users": 2, "Roles": 1})
    assert form == {"access_level_users": "2", "access_level_roles": "1", "access_level_activity_logs": "0"}
    assert levels_from_form({**form, "access_level_activity_logs": "12"}) == {"Users": 2, "Roles": 1, "Activity Logs": 0}
