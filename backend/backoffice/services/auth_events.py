from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.core.metrics import activity_log_failures_total
from backoffice.models.activity_log import ActivityEvent, ActivityLog
from backoffice.models.user import User
from backoffice.services.activity_logger import log_activity

logger = logging.getLogger(__name__)

LOGIN_DESCRIPTION = "User logged in"
LOGOUT_DESCRIPTION = "User logged out"


def _record(db: Session, user: User, event: ActivityEvent, description: str) -> ActivityLog | None:
    try:
        entry = log_activity(db, event, description, subject=user, user_id=user.id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        activity_log_failures_total.inc()
        logger.exception("Failed to record %s for user %s", event.value, user.id)
        return None
    return entry


def record_login(db: Session, user: User) -> ActivityLog | None:
    return _record(db, user, ActivityEvent.LOGIN, LOGIN_DESCRIPTION)


def record_logout(db: Session, user: User) -> ActivityLog | None:
    return _record(db, user, ActivityEvent.LOGOUT, LOGOUT_DESCRIPTION)
