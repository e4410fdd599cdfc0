"""Health check client for the hosted database REST API."""
from __future__ import annotations

import logging
from typing import Optional

import requests
from requests import Response

from ltoc.cache import TTLCache
from ltoc.config import Settings

LOGGER = logging.getLogger(__name__)

HEALTH_RPC = "get_database_health"


class DatabaseHealthError(RuntimeError):
    """Raised when the database health RPC fails or cannot be reached."""


class DatabaseHealthClient:
    """Calls the ``get_database_health`` RPC with the anonymous key and caches the verdict."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        if settings.supabase_anon_key:
            self._session.headers.update(
                {
                    "apikey": settings.supabase_anon_key,
                    "Authorization": f"Bearer {settings.supabase_anon_key}",
                    "Content-Type": "application/json",
                }
            )
        self._cache = TTLCache(settings.health_cache_ttl_seconds)

    @property
    def configured(self) -> bool:
        return self._settings.database_configured

    def check(self) -> str:
        """Return ``healthy``, ``unhealthy`` or ``unknown`` when no database is configured."""

        if not self.configured:
            return "unknown"
        cached = self._cache.get(HEALTH_RPC)
        if cached:
            LOGGER.debug("cache hit", extra={"detail": HEALTH_RPC})
            return cached
        try:
            self.ping()
            status = "healthy"
        except DatabaseHealthError as exc:
            LOGGER.warning("database health check failed", extra={"detail": str(exc)})
            status = "unhealthy"
        self._cache.set(HEALTH_RPC, status)
        return status

    def ping(self) -> None:
        """Invoke the health RPC, raising :class:`DatabaseHealthError` on any failure."""

        url = f"{self._settings.supabase_url}/rest/v1/rpc/{HEALTH_RPC}"
        try:
            response = self._session.post(url, json={}, timeout=5)
        except requests.RequestException as exc:
            raise DatabaseHealthError(f"Database unreachable: {exc}") from exc
        self._raise_for_status(response)

    def _raise_for_status(self, response: Response) -> None:
        if response.ok:
            return
        status = response.status_code
        detail = response.text
        if status == 401:
            message = "Unauthorized: verify LTOC_SUPABASE_ANON_KEY."
        elif status == 404:
            message = f"RPC {HEALTH_RPC} not found."
        else:
            message = f"Database error ({status})."
        LOGGER.error("database request failed", extra={"status": status, "detail": detail[:200]})
        raise DatabaseHealthError(f"{message} Response: {detail[:200]}")
