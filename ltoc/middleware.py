"""Request guard run in front of every request: CSRF, rate limiting and headers."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response

from ltoc.config import Settings
from ltoc.csrf import CookieSpec, CSRFGuard
from ltoc.errors import RateLimitExceeded, SecurityRejection
from ltoc.headers import cors_headers, security_headers
from ltoc.rate_limit import RateLimitDecision, RateLimiter
from ltoc.utils import client_identifier, is_api_path, is_static_asset

LOGGER = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


def _apply_headers(response: Response, headers: Dict[str, str]) -> None:
    for name, value in headers.items():
        if name == "Vary" and "vary" in response.headers:
            existing = response.headers["vary"]
            if value.lower() not in existing.lower():
                response.headers["Vary"] = f"{existing}, {value}"
            continue
        response.headers[name] = value


def _set_csrf_cookie(response: Response, cookie: CookieSpec) -> None:
    response.set_cookie(
        cookie.key,
        cookie.value,
        max_age=cookie.max_age,
        path=cookie.path,
        secure=cookie.secure,
        httponly=cookie.httponly,
        samesite=cookie.samesite,  # type: ignore[arg-type]
    )


class RequestGuard:
    """Linear pipeline: static skip, CSRF, rate limit, downstream, headers.

    Each stage either short-circuits with a plain-text rejection or lets the
    request through. Rejections are final for that request.
    """

    def __init__(self, settings: Settings, rate_limiter: RateLimiter, csrf_guard: CSRFGuard) -> None:
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.csrf_guard = csrf_guard

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        path = request.url.path
        if is_static_asset(path):
            return await call_next(request)

        client_ip = client_identifier(
            request.headers,
            request.client.host if request.client else None,
            self.settings.trusted_proxies,
        )
        log_extra = {"client_ip": client_ip, "path": path, "method": request.method}

        if self._is_preflight(request):
            response = Response(status_code=204)
            self._finalize(request, response, issued=None, decision=None)
            return response

        decision: Optional[RateLimitDecision] = None
        try:
            issued = self.csrf_guard.protect(
                request.method, path, request.cookies, request.headers
            )
            if is_api_path(path):
                decision = self.rate_limiter.enforce(client_ip, path)
        except SecurityRejection as exc:
            extra = {**log_extra, "status": exc.status_code, "detail": str(exc)}
            if isinstance(exc, RateLimitExceeded):
                extra["retry_after"] = exc.retry_after
            LOGGER.warning("request rejected", extra=extra)
            return PlainTextResponse(exc.body, status_code=exc.status_code, headers=exc.headers)

        if issued is not None:
            request.state.csrf_token = issued.value

        try:
            response = await call_next(request)
        except Exception:
            LOGGER.exception("Unhandled exception", extra=log_extra)
            raise

        self._finalize(request, response, issued=issued, decision=decision)
        return response

    def _is_preflight(self, request: Request) -> bool:
        return (
            request.method == "OPTIONS"
            and "access-control-request-method" in request.headers
            and request.headers.get("origin") in self.settings.allowed_origins
        )

    def _finalize(
        self,
        request: Request,
        response: Response,
        *,
        issued: Optional[CookieSpec],
        decision: Optional[RateLimitDecision],
    ) -> None:
        if decision is not None:
            _apply_headers(response, decision.headers())
        _apply_headers(response, security_headers(self.settings))
        _apply_headers(response, cors_headers(request.headers.get("origin"), self.settings))
        if issued is not None:
            _set_csrf_cookie(response, issued)
