"""FastAPI application fronted by the Living Theory of Change request guard."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from ltoc.clients.database import DatabaseHealthClient
from ltoc.config import Settings, get_settings
from ltoc.csrf import CSRF_COOKIE_NAME, CSRFGuard
from ltoc.logging_config import configure_logging
from ltoc.middleware import RequestGuard
from ltoc.rate_limit import Clock, RateLimiter
from ltoc.utils import isoformat_ms, now_ms

LOGGER = logging.getLogger(__name__)

NO_CACHE = "no-cache, no-store, must-revalidate"


def create_app(
    settings: Optional[Settings] = None,
    *,
    clock: Clock = now_ms,
    database: Optional[DatabaseHealthClient] = None,
) -> FastAPI:
    """Build the application with its own rate limit store and CSRF guard."""

    settings = settings or get_settings()
    rate_limiter = RateLimiter(
        settings.rate_limit_requests, settings.rate_limit_window_ms, clock=clock
    )
    csrf_guard = CSRFGuard(settings.csrf_excluded_paths, secure_cookie=settings.is_production)
    guard = RequestGuard(settings, rate_limiter, csrf_guard)
    database_client = database or DatabaseHealthClient(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await rate_limiter.start_sweeper(settings.rate_limit_sweep_interval_ms / 1000)
        try:
            yield
        finally:
            await rate_limiter.stop_sweeper()

    app = FastAPI(title="Living Theory of Change API", version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = rate_limiter
    app.state.database = database_client

    @app.middleware("http")
    async def guard_requests(request: Request, call_next):  # type: ignore[override]
        return await guard.dispatch(request, call_next)

    @app.get("/api/health")
    def health(db: DatabaseHealthClient = Depends(get_database)) -> JSONResponse:
        """Report database, AI provider and environment status."""

        checks = {
            "database": "unknown",
            "ai": "configured" if settings.ai_provider_configured else "not configured",
            "environment": settings.environment,
        }
        payload = {
            "status": "healthy",
            "timestamp": isoformat_ms(clock()),
            "version": settings.version,
            "checks": checks,
        }
        try:
            checks["database"] = db.check()
        except Exception:  # noqa: BLE001
            LOGGER.exception("Health check error")
            payload["status"] = "error"
            return JSONResponse(payload, status_code=503, headers={"Cache-Control": NO_CACHE})

        healthy = checks["database"] == "healthy"
        payload["status"] = "healthy" if healthy else "unhealthy"
        return JSONResponse(
            payload, status_code=200 if healthy else 503, headers={"Cache-Control": NO_CACHE}
        )

    @app.get("/api/csrf-token")
    def csrf_token(request: Request) -> dict:
        """Expose the session's anti-forgery token so browser code can echo it."""

        token = getattr(request.state, "csrf_token", None) or request.cookies.get(CSRF_COOKIE_NAME)
        if not token:
            raise HTTPException(status_code=500, detail="CSRF token unavailable.")
        return {"csrfToken": token}

    return app


def get_database(request: Request) -> DatabaseHealthClient:
    """Provide the configured database health client."""

    return request.app.state.database


configure_logging(get_settings().log_level)
app = create_app()
