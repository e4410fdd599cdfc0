"""In-memory fixed-window rate limiter keyed by client and path."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional

from ltoc.errors import RateLimitExceeded
from ltoc.utils import isoformat_ms, now_ms, retry_after_seconds

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], int]


@dataclass
class RateWindow:
    count: int
    reset_time: int

    def expired(self, now: int) -> bool:
        return now >= self.reset_time


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after: Optional[int] = None

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": isoformat_ms(self.reset_time),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class RateLimiter:
    """Counts requests per ``{identifier}:{path}`` within fixed windows.

    The store lives in process memory and is only safe for a single node.
    Every lookup, reset and increment for a key happens under one lock, so a
    freshly expired window is replaced exactly once. The background sweeper
    only ever deletes expired windows.
    """

    def __init__(
        self,
        limit: int,
        window_ms: int,
        *,
        clock: Clock = now_ms,
    ) -> None:
        self.limit = limit
        self.window_ms = window_ms
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = Lock()
        self._sweeper: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @staticmethod
    def key_for(identifier: str, path: str) -> str:
        return f"{identifier}:{path}"

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def get_window(self, identifier: str, path: str) -> Optional[RateWindow]:
        """Return a copy of the current window for inspection."""

        with self._lock:
            window = self._windows.get(self.key_for(identifier, path))
            if window is None:
                return None
            return RateWindow(count=window.count, reset_time=window.reset_time)

    def hit(self, identifier: str, path: str) -> RateLimitDecision:
        """Record one request and report whether it fits in the quota."""

        key = self.key_for(identifier, path)
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or window.expired(now):
                window = RateWindow(count=1, reset_time=now + self.window_ms)
                self._windows[key] = window
            elif window.count >= self.limit:
                return RateLimitDecision(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    reset_time=window.reset_time,
                    retry_after=retry_after_seconds(window.reset_time, now),
                )
            else:
                window.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=self.limit,
                remaining=max(0, self.limit - window.count),
                reset_time=window.reset_time,
            )

    def enforce(self, identifier: str, path: str) -> RateLimitDecision:
        """Like :meth:`hit` but raise :class:`RateLimitExceeded` on rejection."""

        decision = self.hit(identifier, path)
        if not decision.allowed:
            raise RateLimitExceeded(decision)
        return decision

    def sweep(self) -> int:
        """Delete every window whose reset time has passed; return how many."""

        with self._lock:
            now = self._clock()
            expired = [key for key, window in self._windows.items() if window.expired(now)]
            for key in expired:
                del self._windows[key]
        return len(expired)

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def start_sweeper(self, interval_seconds: float) -> None:
        """Start the periodic sweep task on the running event loop."""

        if self._sweeper is not None:
            LOGGER.debug("rate limit sweeper already running")
            return
        self._stop_event = asyncio.Event()
        self._sweeper = asyncio.create_task(self._run_sweeps(self._stop_event, interval_seconds))
        LOGGER.info("started rate limit sweeper", extra={"interval": interval_seconds})

    async def stop_sweeper(self) -> None:
        if self._sweeper is None or self._stop_event is None:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(self._sweeper, timeout=5.0)
        except asyncio.TimeoutError:
            LOGGER.warning("rate limit sweeper did not stop in time, cancelling")
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
        finally:
            self._sweeper = None
            self._stop_event = None
            LOGGER.info("stopped rate limit sweeper")

    async def _run_sweeps(self, stop_event: asyncio.Event, interval_seconds: float) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                removed = self.sweep()
                if removed:
                    LOGGER.debug("swept expired rate limit windows", extra={"removed": removed})
