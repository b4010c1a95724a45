"""
Translate between a role's permission set and one access level per resource group.

Administrative forms edit a single 0-3 control per group; these helpers turn
that into the concrete permission set and back. Levels arriving from forms
are untrusted: anything outside 0-3 is read as 0 so bad input grants nothing.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.core.rbac import MAX_ACCESS_LEVEL, get_permission, groups, permissions_at_or_below_level
from backoffice.models.permission import Permission

ACCESS_LEVEL_FIELD_PREFIX = "access_level_"


def access_level_field_name(group: str) -> str:
    return ACCESS_LEVEL_FIELD_PREFIX + re.sub(r"[^a-z0-9]+", "_", group.lower()).strip("_")


def parse_level(raw: Any) -> int:
    if isinstance(raw, bool):
        return 0
    try:
        level = int(raw)
    except (TypeError, ValueError):
        return 0
    if 0 <= level <= MAX_ACCESS_LEVEL and str(raw).strip() == str(level):
        return level
    return 0


def levels_from_permission_names(names: Iterable[str]) -> dict[str, int]:
    levels = {group: 0 for group in groups()}
    for name in names:
        permission = get_permission(name)
        if permission is None or permission.group not in levels:
            continue
        levels[permission.group] = max(levels[permission.group], permission.access_level)
    return levels


def permission_names_from_levels(levels: Mapping[str, Any]) -> list[str]:
    names: list[str] = []
    for group in groups():
        names.extend(permissions_at_or_below_level(group, parse_level(levels.get(group, 0))))
    return names


def levels_from_form(data: Mapping[str, Any]) -> dict[str, int]:
    return {group: parse_level(data.get(access_level_field_name(group), 0)) for group in groups()}


def levels_to_form(levels: Mapping[str, int]) -> dict[str, str]:
    return {access_level_field_name(group): str(levels.get(group, 0)) for group in groups()}


def permissions_to_levels(db: Session, permission_ids: Iterable[int]) -> dict[str, int]:
    ids = set(permission_ids)
    if not ids:
        return levels_from_permission_names(())
    names = db.scalars(select(Permission.name).where(Permission.id.in_(ids)))
    return levels_from_permission_names(names)


def levels_to_permission_ids(db: Session, levels: Mapping[str, Any]) -> set[int]:
    names = permission_names_from_levels(levels)
    if not names:
        return set()
    return set(db.scalars(select(Permission.id).where(Permission.name.in_(names))))
