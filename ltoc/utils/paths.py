"""Request path and client identity helpers."""
from __future__ import annotations

from typing import Iterable, Mapping, Optional

UNKNOWN_CLIENT = "unknown"
INTERNAL_PREFIXES = ("/_internal", "/static")


def is_static_asset(path: str) -> bool:
    """Return ``True`` for paths the request guard never intercepts."""

    return "." in path or matches_prefix(path, INTERNAL_PREFIXES)


def is_api_path(path: str) -> bool:
    return path.startswith("/api/")


def matches_prefix(path: str, prefixes: Iterable[str]) -> bool:
    """Check whether ``path`` starts with any of ``prefixes``."""

    return any(path.startswith(prefix) for prefix in prefixes)


def client_identifier(
    headers: Mapping[str, str],
    client_host: Optional[str],
    trusted_proxies: Iterable[str] = (),
) -> str:
    """Resolve the client identity used for rate limiting.

    ``X-Forwarded-For`` is only honoured when the connection comes from one
    of ``trusted_proxies``; its first hop then wins. Otherwise the connection
    address is used. Clients with neither share the ``unknown`` bucket.
    """

    if client_host and client_host in trusted_proxies:
        forwarded = headers.get("x-forwarded-for") or ""
        first_hop = forwarded.split(",", 1)[0].strip()
        if first_hop:
            return first_hop
    if client_host:
        return client_host
    return UNKNOWN_CLIENT
