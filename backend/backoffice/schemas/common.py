from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class HealthResponse(ORMModel):
    service: str
    status: str
    timestamp: datetime
    client_ip: str | None = None
