"""RateLimiter: fixed-window request counter per client."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from styledna.stores._ttl import TTLStore, utc_now

if TYPE_CHECKING:
    from styledna.stores._ttl import Clock

DEFAULT_WINDOW = timedelta(seconds=60)
DEFAULT_MAX_REQUESTS = 10


@dataclass(slots=True)
class RateWindow:
    """Request count of one client within the current window."""

    count: int
    reset_at: datetime


@dataclass(frozen=True, slots=True)
class RateDecision:
    """Result of one ``check_and_consume`` call."""

    allowed: bool
    remaining: int
    reset_at: datetime


class RateLimiter:
    """Fixed-window limiter: at most ``max_requests`` per ``window`` per client.

    A new window starts on the first request after the previous one ended, so a
    client may burst up to twice the limit across a window boundary.
    """

    def __init__(
        self,
        *,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window: timedelta = DEFAULT_WINDOW,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize with limits and an injectable clock."""
        if max_requests < 1:
            msg = "max_requests must be >= 1."
            raise ValueError(msg)
        self._max_requests = max_requests
        self._window = window
        self._clock = clock
        self._windows: TTLStore[RateWindow] = TTLStore(window, clock=clock, name="rate-limit")
        self._lock = threading.Lock()

    @property
    def max_requests(self) -> int:
        """Return the number of requests allowed per window."""
        return self._max_requests

    @property
    def window(self) -> timedelta:
        """Return the window duration."""
        return self._window

    def check_and_consume(self, client_id: str) -> RateDecision:
        """Count one request for ``client_id`` and report whether it is allowed."""
        with self._lock:
            now = self._clock()
            current = self._windows.get(client_id)
            if current is None or now > current.reset_at:
                current = RateWindow(count=1, reset_at=now + self._window)
                self._windows.put(client_id, current)
                return RateDecision(allowed=True, remaining=self._max_requests - 1, reset_at=current.reset_at)

            if current.count >= self._max_requests:
                return RateDecision(allowed=False, remaining=0, reset_at=current.reset_at)

            current.count += 1
            return RateDecision(
                allowed=True,
                remaining=self._max_requests - current.count,
                reset_at=current.reset_at,
            )

    def retry_after(self, decision: RateDecision) -> float:
        """Return seconds until the window behind ``decision`` resets."""
        return max(0.0, (decision.reset_at - self._clock()).total_seconds())

    def sweep(self) -> tuple[str, ...]:
        """Drop windows of clients that have been idle for a full window."""
        return self._windows.sweep()

    def start(self) -> None:
        """Start sweeping idle windows in the background."""
        self._windows.start()

    def stop(self) -> None:
        """Stop the background sweeper."""
        self._windows.stop()
