"""Security and CORS response headers."""
from __future__ import annotations

from typing import Dict, Optional

from ltoc.config import Settings

HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"
CORS_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, Authorization, X-CSRF-Token"
CORS_MAX_AGE = "86400"
AI_PROVIDER_ORIGINS = ("https://api.openai.com", "https://api.anthropic.com")


def _websocket_origin(url: str) -> str:
    if url.startswith("https://"):
        return "wss://" + url[len("https://"):]
    if url.startswith("http://"):
        return "ws://" + url[len("http://"):]
    return url


def content_security_policy(settings: Settings) -> str:
    """Build the ``Content-Security-Policy`` value for the configured backends."""

    if settings.supabase_url:
        database_origins = [settings.supabase_url, _websocket_origin(settings.supabase_url)]
    else:
        database_origins = ["https://*.supabase.co", "wss://*.supabase.co"]
    connect_src = " ".join(["'self'", *database_origins, *AI_PROVIDER_ORIGINS])
    directives = [
        "default-src 'self'",
        "script-src 'self' 'unsafe-inline' 'unsafe-eval' https://cdn.jsdelivr.net",
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
        "font-src 'self' https://fonts.gstatic.com",
        "img-src 'self' data: https: blob:",
        f"connect-src {connect_src}",
        "frame-ancestors 'none'",
        "base-uri 'self'",
        "form-action 'self'",
    ]
    return "; ".join(directives)


def security_headers(settings: Settings) -> Dict[str, str]:
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
        "Content-Security-Policy": content_security_policy(settings),
    }
    if settings.is_production:
        headers["Strict-Transport-Security"] = HSTS_VALUE
    return headers


def cors_headers(origin: Optional[str], settings: Settings) -> Dict[str, str]:
    """Return CORS headers when ``origin`` is allow-listed, otherwise nothing."""

    if not origin or origin not in settings.allowed_origins:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Max-Age": CORS_MAX_AGE,
        "Vary": "Origin",
    }
