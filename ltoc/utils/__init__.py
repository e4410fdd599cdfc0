"""Utility helpers."""
from .paths import (  # noqa: F401
    UNKNOWN_CLIENT,
    client_identifier,
    is_api_path,
    is_static_asset,
    matches_prefix,
)
from .time import isoformat_ms, now_ms, retry_after_seconds  # noqa: F401
