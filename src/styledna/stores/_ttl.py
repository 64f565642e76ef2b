"""TTLStore: keyed in-memory store with time-based eviction."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    Clock = Callable[[], datetime]

V = TypeVar("V")

logger = logging.getLogger("styledna.stores")


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[V]):
    """One stored value and the moment it was written."""

    value: V
    created_at: datetime


class TTLStore(Generic[V]):
    """Map string keys to values that expire a fixed time after they were written.

    Expiry is enforced twice: ``get`` treats an expired entry as absent and
    deletes it, and ``sweep`` removes every expired entry. ``start`` runs
    ``sweep`` on a daemon thread every ``sweep_interval`` (the TTL by default)
    until ``stop`` is called. Only time governs retention; there is no size
    bound.
    """

    def __init__(
        self,
        ttl: timedelta,
        *,
        clock: Clock = utc_now,
        sweep_interval: timedelta | None = None,
        on_evict: Callable[[str, V], None] | None = None,
        name: str = "ttl-store",
    ) -> None:
        """Initialize an empty store."""
        if ttl <= timedelta(0):
            msg = "ttl must be positive."
            raise ValueError(msg)
        interval = ttl if sweep_interval is None else sweep_interval
        if interval <= timedelta(0):
            msg = "sweep_interval must be positive."
            raise ValueError(msg)
        self._ttl = ttl
        self._clock = clock
        self._sweep_interval = interval
        self._on_evict = on_evict
        self._name = name
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stopped = threading.Event()

    @property
    def ttl(self) -> timedelta:
        """Return the time-to-live applied to every entry."""
        return self._ttl

    @property
    def clock(self) -> Clock:
        """Return the clock used to timestamp and expire entries."""
        return self._clock

    @property
    def running(self) -> bool:
        """Return whether the background sweeper is active."""
        return self._thread is not None

    def _expired(self, entry: CacheEntry[V], now: datetime) -> bool:
        return now - entry.created_at > self._ttl

    def _evicted(self, evicted: list[tuple[str, V]]) -> None:
        """Report evictions to the callback outside the lock.

        A failing callback is logged and does not stop the remaining
        evictions or the sweeper thread.
        """
        for key, value in evicted:
            logger.debug("%s: evicted %s", self._name, key)
            if self._on_evict is None:
                continue
            try:
                self._on_evict(key, value)
            except Exception:
                logger.warning("%s: eviction callback failed for %s", self._name, key, exc_info=True)

    def put(self, key: str, value: V) -> CacheEntry[V]:
        """Insert or overwrite ``key``, stamping it with the current time."""
        entry = CacheEntry(value=value, created_at=self._clock())
        with self._lock:
            self._entries[key] = entry
        return entry

    def entry(self, key: str) -> CacheEntry[V] | None:
        """Return the live entry for ``key``, evicting it if it has expired."""
        now = self._clock()
        with self._lock:
            current = self._entries.get(key)
            if current is None:
                return None
            if not self._expired(current, now):
                return current
            del self._entries[key]
        self._evicted([(key, current.value)])
        return None

    def get(self, key: str) -> V | None:
        """Return the live value for ``key`` or ``None`` when absent or expired."""
        current = self.entry(key)
        return None if current is None else current.value

    def delete(self, key: str) -> bool:
        """Remove ``key``. Return ``True`` when an entry was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def sweep(self) -> tuple[str, ...]:
        """Remove every expired entry and return the removed keys."""
        now = self._clock()
        with self._lock:
            evicted = [(key, entry.value) for key, entry in self._entries.items() if self._expired(entry, now)]
            for key, _ in evicted:
                del self._entries[key]
        self._evicted(evicted)
        return tuple(key for key, _ in evicted)

    def __contains__(self, key: object) -> bool:
        """Return whether ``key`` holds a live entry."""
        return isinstance(key, str) and self.entry(key) is not None

    def __len__(self) -> int:
        """Return the number of stored entries, including ones not yet swept."""
        with self._lock:
            return len(self._entries)

    def start(self) -> None:
        """Start the background sweeper. Calling it twice is a no-op."""
        with self._lock:
            if self._thread is not None:
                return
            self._stopped = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stopped,),
                name=f"{self._name}-sweeper",
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        """Stop the background sweeper and wait for it to exit."""
        with self._lock:
            thread, self._thread = self._thread, None
            stopped = self._stopped
        if thread is None:
            return
        stopped.set()
        thread.join()

    def _run(self, stopped: threading.Event) -> None:
        interval = self._sweep_interval.total_seconds()
        while not stopped.wait(interval):
            self.sweep()
