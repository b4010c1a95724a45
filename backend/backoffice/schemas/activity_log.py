from __future__ import annotations

from datetime import datetime
from typing import Any

from backoffice.models.activity_log import ActivityEvent
from backoffice.schemas.common import ORMModel


class ActivityLogRead(ORMModel):
    id: int
    user_id: int | None
    subject_type: str | None
    subject_id: int | None
    event: ActivityEvent
    description: str
    properties: dict[str, Any] | None
    ip_address: str | None
    user_agent: str | None
    created_at: datetime | None
