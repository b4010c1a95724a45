"""
Audit and blame behaviour attached to the User and Role models.

Creates and deletes are always logged. Updates log only the attributes that
actually changed, minus bookkeeping fields, with sensitive values replaced
by a marker in both ``old`` and ``new`` so the change stays visible without
leaking the value. An update that touches nothing but bookkeeping fields
writes no entry at all.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from backoffice.core.context import current_context
from backoffice.core.metrics import activity_log_failures_total
from backoffice.models.activity_log import ActivityEvent
from backoffice.models.role import Role
from backoffice.models.user import User
from backoffice.services.activity_logger import json_safe, log_activity
from backoffice.services.lifecycle import Change, LifecycleHooks, Stage, lifecycle_hooks

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"


@dataclass(frozen=True, slots=True)
class AuditedModel:
    label: str
    ignored_fields: frozenset[str]
    sensitive_fields: frozenset[str] = frozenset()
    display_name: Callable[[Any], str] = lambda instance: str(instance.name)


AUDITED_MODELS: dict[type, AuditedModel] = {
    User: AuditedModel(
        label="user",
        ignored_fields=frozenset({"updated_at", "remember_token", "updated_by"}),
        sensitive_fields=frozenset({"password"}),
    ),
    Role: AuditedModel(label="role", ignored_fields=frozenset({"updated_at"})),
}


def build_update_properties(
    change: Change,
    ignored_fields: frozenset[str] = frozenset(),
    sensitive_fields: frozenset[str] = frozenset(),
) -> dict[str, dict[str, Any]] | None:
    keys = [key for key in change.new if key not in ignored_fields]
    if not keys:
        return None

    old = {key: json_safe(change.old.get(key)) for key in keys}
    new = {key: json_safe(change.new[key]) for key in keys}
    for key in sensitive_fields.intersection(keys):
        old[key] = REDACTED
        new[key] = REDACTED
    return {"old": old, "new": new}


def _audited(instance: Any) -> AuditedModel:
    return AUDITED_MODELS[type(instance)]


def _record(session: Session, event: ActivityEvent, instance: Any, properties: dict[str, Any] | None = None) -> None:
    audited = _audited(instance)
    verb = event.label
    try:
        log_activity(
            session,
            event,
            f"{verb} {audited.label}: {audited.display_name(instance)}",
            subject=instance,
            properties=properties,
        )
    except Exception:  # noqa: BLE001
        activity_log_failures_total.inc()
        logger.exception("Failed to record %s activity for %s", event.value, audited.label)


def log_created(session: Session, change: Change) -> None:
    _record(session, ActivityEvent.CREATED, change.instance)


def log_updated(session: Session, change: Change) -> None:
    audited = _audited(change.instance)
    properties = build_update_properties(change, audited.ignored_fields, audited.sensitive_fields)
    if properties is None:
        return
    _record(session, ActivityEvent.UPDATED, change.instance, properties)


def log_deleted(session: Session, change: Change) -> None:
    _record(session, ActivityEvent.DELETED, change.instance)


def stamp_created_by(session: Session, change: Change) -> None:
    actor_id = current_context().user_id
    if actor_id is None:
        return
    instance = change.instance
    if instance.created_by is None:
        instance.created_by = actor_id
    if instance.updated_by is None:
        instance.updated_by = actor_id


def stamp_updated_by(session: Session, change: Change) -> None:
    actor_id = current_context().user_id
    if actor_id is not None:
        change.instance.updated_by = actor_id


def register_model_hooks(hooks: LifecycleHooks = lifecycle_hooks) -> LifecycleHooks:
    hooks.register(User, Stage.BEFORE_CREATE, stamp_created_by)
    hooks.register(User, Stage.BEFORE_UPDATE, stamp_updated_by)
    for model in AUDITED_MODELS:
        hooks.register(model, Stage.AFTER_CREATE, log_created)
        hooks.register(model, Stage.AFTER_UPDATE, log_updated)
        hooks.register(model, Stage.AFTER_DELETE, log_deleted)
    hooks.install()
    return hooks
