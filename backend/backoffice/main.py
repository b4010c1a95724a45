from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import Response as FastAPIResponse

from backoffice.api.middleware import request_context_middleware
from backoffice.api.v1.api import api_router
from backoffice.core.config import get_settings
from backoffice.core.logging import configure_logging, resolve_level
from backoffice.core.metrics import render_metrics
from backoffice.db.bootstrap import bootstrap_database
from backoffice.db.session import SessionLocal
from backoffice.services.audit_hooks import register_model_hooks

logger = logging.getLogger(__name__)


def create_app(bootstrap: bool = True) -> FastAPI:
    settings = get_settings()
    configure_logging(level=resolve_level(settings.log_level), log_format=settings.log_format)
    register_model_hooks()

    app = FastAPI(title=settings.app_name, version="1.0.0")
    app.middleware("http")(request_context_middleware)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    app.include_router(api_router)

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> FastAPIResponse:
        output, content_type = render_metrics()
        return FastAPIResponse(content=output, media_type=content_type)

    if bootstrap:

        @app.on_event("startup")
        def on_startup() -> None:
            db = SessionLocal()
            try:
                bootstrap_database(db)
            finally:
                db.close()
            logger.info("Back office startup complete")

    return app


app = create_app()
