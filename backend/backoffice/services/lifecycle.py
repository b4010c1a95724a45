"""
Explicit per-model lifecycle hooks.

Callbacks are registered per model and stage and are driven by SQLAlchemy
session events: ``before_*`` stages run inside ``before_flush`` (where the
instance may still be modified) and ``after_*`` stages run in
``after_flush_postexec`` once primary keys are assigned. Objects added by
``after_*`` callbacks are written by the next flush of the same commit.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy import event, inspect, select
from sqlalchemy.orm import MANYTOONE, Session

logger = logging.getLogger(__name__)

_PENDING_KEY = "backoffice_lifecycle_pending"


class Stage(str, Enum):
    BEFORE_CREATE = "before_create"
    BEFORE_UPDATE = "before_update"
    AFTER_CREATE = "after_create"
    AFTER_UPDATE = "after_update"
    AFTER_DELETE = "after_delete"


@dataclass(slots=True)
class Change:
    instance: Any
    old: dict[str, Any] = field(default_factory=dict)
    new: dict[str, Any] = field(default_factory=dict)

    @property
    def changed(self) -> set[str]:
        return set(self.new)


HookCallback = Callable[[Session, Change], None]


def _committed_values(session: Session, instance: Any, keys: list[str]) -> dict[str, Any]:
    """Read stored values for columns changed before their old value was ever loaded."""
    state = inspect(instance)
    if not keys or state.identity is None:
        return {}
    mapper = state.mapper
    columns = [mapper.get_property(key).columns[0] for key in keys]
    criteria = [column == value for column, value in zip(mapper.primary_key, state.identity)]
    row = session.connection().execute(select(*columns).where(*criteria)).first()
    return dict(zip(keys, row)) if row is not None else {}


def _related_value(target: Any | None, remote_column: Any) -> Any:
    if target is None:
        return None
    return getattr(target, inspect(target).mapper.get_property_by_column(remote_column).key)


def capture_changes(session: Session, instance: Any, known_old: dict[str, Any] | None = None) -> Change:
    """
    Pre- and post-change values of every column with pending net changes.

    Many-to-one assignments are reported under their foreign-key columns
    because those columns are only synced later, during the flush itself.
    """
    known_old = known_old or {}
    state = inspect(instance)
    change = Change(instance=instance)
    unloaded: list[str] = []

    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        if not history.has_changes():
            continue
        change.new[attr.key] = history.added[0] if history.added else None
        if attr.key in known_old:
            change.old[attr.key] = known_old[attr.key]
        elif history.deleted:
            change.old[attr.key] = history.deleted[0]
        else:
            change.old[attr.key] = None
            unloaded.append(attr.key)

    for relationship in state.mapper.relationships:
        if relationship.direction is not MANYTOONE:
            continue
        history = state.attrs[relationship.key].history
        if not history.has_changes():
            continue
        target = history.added[0] if history.added else None
        for local_column, remote_column in relationship.local_remote_pairs:
            key = state.mapper.get_property_by_column(local_column).key
            if key in change.new:
                continue
            change.new[key] = _related_value(target, remote_column)
            if key in known_old:
                change.old[key] = known_old[key]
            elif history.deleted and history.deleted[0] is not None:
                change.old[key] = _related_value(history.deleted[0], remote_column)
            else:
                change.old[key] = getattr(instance, key)

    change.old.update(_committed_values(session, instance, unloaded))
    for key in [key for key in change.new if change.new[key] == change.old.get(key)]:
        del change.new[key]
        change.old.pop(key, None)
    return change


def snapshot(instance: Any) -> dict[str, Any]:
    state = inspect(instance)
    return {attr.key: getattr(instance, attr.key) for attr in state.mapper.column_attrs}


class LifecycleHooks:
    def __init__(self) -> None:
        self._callbacks: dict[tuple[type, Stage], list[HookCallback]] = defaultdict(list)

    def register(self, model: type, stage: Stage, callback: HookCallback) -> None:
        callbacks = self._callbacks[(model, stage)]
        if callback not in callbacks:
            callbacks.append(callback)

    def clear(self) -> None:
        self._callbacks.clear()

    def callbacks_for(self, instance: Any, stage: Stage) -> list[HookCallback]:
        found: list[HookCallback] = []
        for model in type(instance).__mro__:
            found.extend(self._callbacks.get((model, stage), ()))
        return found

    def is_tracked(self, instance: Any) -> bool:
        models = {model for model, _ in self._callbacks}
        return any(model in models for model in type(instance).__mro__)

    def install(self) -> None:
        if not event.contains(Session, "before_flush", self._before_flush):
            event.listen(Session, "before_flush", self._before_flush)
            event.listen(Session, "after_flush_postexec", self._after_flush_postexec)
            event.listen(Session, "after_rollback", self._discard_pending)

    def uninstall(self) -> None:
        if event.contains(Session, "before_flush", self._before_flush):
            event.remove(Session, "before_flush", self._before_flush)
            event.remove(Session, "after_flush_postexec", self._after_flush_postexec)
            event.remove(Session, "after_rollback", self._discard_pending)

    def _dispatch(self, session: Session, stage: Stage, change: Change) -> None:
        for callback in self.callbacks_for(change.instance, stage):
            callback(session, change)

    def _before_flush(self, session: Session, flush_context: Any, instances: Any) -> None:
        pending: list[tuple[Stage, Change]] = []

        for instance in list(session.new):
            if not self.is_tracked(instance):
                continue
            self._dispatch(session, Stage.BEFORE_CREATE, Change(instance=instance))
            pending.append((Stage.AFTER_CREATE, Change(instance=instance)))

        for instance in list(session.dirty):
            if not self.is_tracked(instance) or not session.is_modified(instance, include_collections=False):
                continue
            before = capture_changes(session, instance)
            self._dispatch(session, Stage.BEFORE_UPDATE, before)
            pending.append((Stage.AFTER_UPDATE, capture_changes(session, instance, known_old=before.old)))

        for instance in list(session.deleted):
            if not self.is_tracked(instance):
                continue
            pending.append((Stage.AFTER_DELETE, Change(instance=instance, old=snapshot(instance))))

        session.info[_PENDING_KEY] = pending

    def _after_flush_postexec(self, session: Session, flush_context: Any) -> None:
        pending = session.info.pop(_PENDING_KEY, [])
        for stage, change in pending:
            self._dispatch(session, stage, change)

    def _discard_pending(self, session: Session) -> None:
        if session.info.pop(_PENDING_KEY, None):
            logger.debug("Discarded lifecycle callbacks of a rolled back flush")


lifecycle_hooks = LifecycleHooks()
