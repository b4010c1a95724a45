from __future__ import annotations

from fastapi import Request, Response

from backoffice.core.config import get_settings
from backoffice.core.context import extract_client_ip, request_context


async def request_context_middleware(request: Request, call_next) -> Response:
    settings = get_settings()
    ip_address = extract_client_ip(
        request.headers.get("x-forwarded-for"),
        request.client.host if request.client else None,
        trust_forwarded_for=settings.trust_forwarded_for,
    )
    with request_context(ip_address=ip_address, user_agent=request.headers.get("user-agent")):
        return await call_next(request)
