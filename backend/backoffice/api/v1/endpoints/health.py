from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from backoffice.core.context import current_context
from backoffice.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def healthcheck() -> HealthResponse:
    context = current_context()
    return HealthResponse(
        service="backoffice-access-control",
        status="ok",
        timestamp=datetime.now(timezone.utc),
        client_ip=context.ip_address,
    )
