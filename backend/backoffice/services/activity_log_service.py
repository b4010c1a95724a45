from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from backoffice.core.config import get_settings
from backoffice.core.exceptions import ConflictError, NotFoundError
from backoffice.models.activity_log import ActivityEvent, ActivityLog
from backoffice.models.user import User
from backoffice.services.policies import activity_log_policy

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PurgeResult:
    removed_rows: int
    cutoff: datetime


def list_activity_logs(
    db: Session,
    event: ActivityEvent | str | None = None,
    user_id: int | None = None,
    subject_type: str | None = None,
    subject_id: int | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[ActivityLog], int]:
    filters = []
    if event is not None:
        filters.append(ActivityLog.event == ActivityEvent(event).value)
    if user_id is not None:
        filters.append(ActivityLog.user_id == user_id)
    if subject_type is not None:
        filters.append(ActivityLog.subject_type == subject_type)
    if subject_id is not None:
        filters.append(ActivityLog.subject_id == subject_id)
    if search:
        filters.append(func.lower(ActivityLog.description).contains(search.lower()))

    total = db.scalar(select(func.count()).select_from(ActivityLog).where(*filters)) or 0
    rows = list(
        db.scalars(
            select(ActivityLog)
            .where(*filters)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .offset(skip)
            .limit(limit)
        )
    )
    return rows, total


def logs_for_subject(db: Session, subject_type: str, subject_id: int) -> list[ActivityLog]:
    return list(
        db.scalars(
            select(ActivityLog)
            .where(ActivityLog.subject_type == subject_type, ActivityLog.subject_id == subject_id)
            .order_by(ActivityLog.id.asc())
        )
    )


def count_by_event(db: Session, since: datetime | None = None) -> dict[str, int]:
    query = select(ActivityLog.event, func.count()).group_by(ActivityLog.event)
    if since is not None:
        query = query.where(ActivityLog.created_at >= since)
    counts = {event.value: 0 for event in ActivityEvent}
    for event, total in db.execute(query).all():
        counts[event] = total
    return counts


def delete_activity_log(db: Session, actor: User | None, log_id: int) -> None:
    entry = db.scalar(select(ActivityLog).where(ActivityLog.id == log_id))
    if not entry:
        raise NotFoundError("Activity log not found.")

    decision = activity_log_policy.delete(actor, entry)
    if not decision:
        raise ConflictError(decision.message or "Activity log cannot be deleted.", reason=decision.reason)

    db.delete(entry)
    db.commit()


def purge_activity_logs(db: Session, actor: User | None, older_than_days: int | None = None) -> PurgeResult:
    decision = activity_log_policy.delete_any(actor)
    if not decision:
        raise ConflictError(decision.message or "Activity logs cannot be purged.", reason=decision.reason)

    days = older_than_days if older_than_days is not None else get_settings().activity_log_retention_days
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    removed = db.execute(delete(ActivityLog).where(ActivityLog.created_at < cutoff)).rowcount or 0
    db.commit()
    logger.info("Purged %d activity log rows older than %s", removed, cutoff.isoformat())
    return PurgeResult(removed_rows=removed, cutoff=cutoff)
