"""Application settings and environment loading utilities."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from ltoc.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

DEFAULT_ALLOWED_ORIGINS = ("http://localhost:3000", "https://ltoc.vercel.app")
DEFAULT_CSRF_EXCLUDED_PATHS = ("/api/webhooks", "/api/health")


def _load_dotenv() -> None:
    env_path = Path(".env")
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


_load_dotenv()


def parse_positive_int(value: Optional[str], name: str) -> int:
    """Parse ``value`` as a positive integer or raise :class:`ConfigurationError`."""

    try:
        parsed = int((value or "").strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc
    if parsed <= 0:
        raise ConfigurationError(f"{name} must be positive, got {parsed}")
    return parsed


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return parse_positive_int(raw, name)
    except ConfigurationError as exc:
        LOGGER.warning("invalid setting, using default", extra={"detail": str(exc), "default": default})
        return default


def _log_level_from_env(name: str, default: str) -> str:
    level = (os.getenv(name) or default).strip().upper()
    if level not in logging.getLevelNamesMapping():
        LOGGER.warning(
            "invalid setting, using default",
            extra={"detail": f"{name} must be a logging level, got {level!r}", "default": default},
        )
        return default
    return level


def _split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration derived from environment variables."""

    environment: str = "development"
    rate_limit_window_ms: int = 60_000
    rate_limit_requests: int = 100
    rate_limit_sweep_interval_ms: int = 60_000
    allowed_origins: Tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    csrf_excluded_paths: Tuple[str, ...] = DEFAULT_CSRF_EXCLUDED_PATHS
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    ai_provider_configured: bool = False
    health_cache_ttl_seconds: int = 10
    version: str = "1.0.0"
    log_level: str = "INFO"
    trusted_proxies: Tuple[str, ...] = ()

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def database_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @classmethod
    def from_env(cls) -> "Settings":
        app_url = os.getenv("LTOC_APP_URL", DEFAULT_ALLOWED_ORIGINS[0]).strip()
        extra_origins = os.getenv("LTOC_CORS_ORIGINS")
        origins = _split_csv(extra_origins) if extra_origins is not None else DEFAULT_ALLOWED_ORIGINS[1:]
        allowed_origins = tuple(dict.fromkeys((app_url, *origins)))

        excluded = os.getenv("LTOC_CSRF_EXCLUDED_PATHS")
        csrf_excluded_paths = (
            _split_csv(excluded) if excluded is not None else DEFAULT_CSRF_EXCLUDED_PATHS
        )

        supabase_url = os.getenv("LTOC_SUPABASE_URL") or None
        return cls(
            environment=os.getenv("LTOC_ENV", "development").strip() or "development",
            rate_limit_window_ms=_int_from_env("LTOC_RATE_LIMIT_WINDOW_MS", 60_000),
            rate_limit_requests=_int_from_env("LTOC_RATE_LIMIT_REQUESTS", 100),
            rate_limit_sweep_interval_ms=_int_from_env("LTOC_RATE_LIMIT_SWEEP_INTERVAL_MS", 60_000),
            allowed_origins=allowed_origins,
            csrf_excluded_paths=csrf_excluded_paths,
            supabase_url=supabase_url.rstrip("/") if supabase_url else None,
            supabase_anon_key=os.getenv("LTOC_SUPABASE_ANON_KEY") or None,
            ai_provider_configured=bool(
                os.getenv("OPENAI_API_KEY") or os.getenv("ANTHROPIC_API_KEY")
            ),
            health_cache_ttl_seconds=_int_from_env("LTOC_HEALTH_CACHE_TTL_SECONDS", 10),
            version=os.getenv("LTOC_VERSION", "1.0.0"),
            log_level=_log_level_from_env("LTOC_LOG_LEVEL", "INFO"),
            trusted_proxies=_split_csv(os.getenv("LTOC_TRUSTED_PROXIES")),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings.from_env()
