"""
Ambient request context.

Holds who is acting and from where for the duration of one administrative
action. The HTTP middleware opens a context per request; scripts and tests
use :func:`request_context`. Outside any context the actor is the system.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass


@dataclass(slots=True)
class RequestContext:
    user_id: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def is_system(self) -> bool:
        return self.user_id is None


_current: ContextVar[RequestContext | None] = ContextVar("backoffice_request_context", default=None)


def current_context() -> RequestContext:
    return _current.get() or RequestContext()


def bind_user(user_id: int | None) -> None:
    # Mutates the shared object so the binding survives FastAPI's threadpool context copies.
    context = _current.get()
    if context is not None:
        context.user_id = user_id


@contextmanager
def request_context(
    user_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Iterator[RequestContext]:
    context = RequestContext(user_id=user_id, ip_address=ip_address, user_agent=user_agent)
    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)


def extract_client_ip(x_forwarded_for: str | None, fallback: str | None, trust_forwarded_for: bool = True) -> str | None:
    if trust_forwarded_for and x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return fallback
