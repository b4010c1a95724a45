from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from backoffice.core.config import get_settings
from backoffice.core.context import current_context
from backoffice.core.metrics import activity_logs_written_total
from backoffice.models.activity_log import ActivityEvent, ActivityLog
from backoffice.models.base import utc_now

_DESCRIPTION_LEN = 255
_IP_LEN = 45


class _CurrentActor:
    def __repr__(self) -> str:
        return "CURRENT_ACTOR"


CURRENT_ACTOR: Any = _CurrentActor()


def json_safe(value: Any) -> Any:
    """Convert to a JSON-serializable value so properties never fail on INSERT."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, dict):
        return {str(key): json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [json_safe(item) for item in value]
    return str(value)


def subject_reference(subject: Any | None) -> tuple[str | None, int | None]:
    if subject is None:
        return None, None
    identity = inspect(subject).identity
    subject_id = identity[0] if identity else getattr(subject, "id", None)
    return type(subject).__name__, subject_id


def log_activity(
    db: Session,
    event: ActivityEvent | str,
    description: str,
    subject: Any | None = None,
    properties: dict[str, Any] | None = None,
    user_id: Any = CURRENT_ACTOR,
) -> ActivityLog:
    """
    Append one activity entry to the session.

    The actor, IP address and user agent come from the ambient request
    context unless ``user_id`` is given explicitly. Nothing is committed
    here: lifecycle hooks call this mid-flush and the entry is written
    together with the change it describes.
    """
    settings = get_settings()
    context = current_context()
    event = ActivityEvent(event)
    subject_type, subject_id = subject_reference(subject)

    entry = ActivityLog(
        user_id=context.user_id if user_id is CURRENT_ACTOR else user_id,
        subject_type=subject_type,
        subject_id=subject_id,
        event=event.value,
        description=description[:_DESCRIPTION_LEN],
        properties=json_safe(properties) if properties is not None else None,
        ip_address=context.ip_address[:_IP_LEN] if context.ip_address else None,
        user_agent=context.user_agent[: settings.user_agent_max_length] if context.user_agent else None,
        created_at=utc_now(),
    )
    db.add(entry)
    activity_logs_written_total.labels(event=event.value).inc()
    return entry
