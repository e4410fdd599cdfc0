"""Time helpers."""
from __future__ import annotations

import math
import time
from datetime import UTC, datetime


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""

    return int(time.time() * 1000)


def isoformat_ms(epoch_ms: int | float) -> str:
    """Render epoch milliseconds as an ISO-8601 UTC string, e.g. ``2026-01-01T00:00:00.000Z``."""

    value = datetime.fromtimestamp(epoch_ms / 1000, tz=UTC)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def retry_after_seconds(reset_ms: int | float, now: int | float) -> int:
    """Whole seconds until ``reset_ms``, rounded up."""

    return max(0, math.ceil((reset_ms - now) / 1000))
