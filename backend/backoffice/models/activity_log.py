from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column, object_session, relationship

from backoffice.core.exceptions import ImmutableRecordError
from backoffice.models.base import Base, utc_now


class ActivityEvent(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    LOGIN = "login"
    LOGOUT = "logout"

    @property
    def label(self) -> str:
        return self.value.title()


class ActivityLog(Base):
    """
    Append-only audit entry.

    ``subject_type``/``subject_id`` are a weak reference: no foreign key, the
    subject may be deleted long after the entry is written. There is no
    ``updated_at`` column because rows are never modified once inserted.
    """

    __tablename__ = "activity_logs"
    __table_args__ = (Index("ix_activity_logs_subject", "subject_type", "subject_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    subject_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subject_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    event: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    properties: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=True, index=True)

    user: Mapped["User | None"] = relationship()

    @property
    def is_system(self) -> bool:
        return self.user_id is None


@event.listens_for(ActivityLog, "before_update")
def _reject_activity_log_update(mapper, connection, target: ActivityLog) -> None:
    session = object_session(target)
    if session is not None and session.is_modified(target, include_collections=False):
        raise ImmutableRecordError(f"Activity log {target.id} is immutable.")
