"""AnalysisCache: most recent style analysis per image."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from styledna.stores._ttl import TTLStore, utc_now

if TYPE_CHECKING:
    from styledna.stores._ttl import Clock
    from styledna.types import Analysis

DEFAULT_ANALYSIS_TTL = timedelta(minutes=60)


class AnalysisCache:
    """Cache analyses by image ID for a fixed time-to-live."""

    def __init__(self, *, ttl: timedelta = DEFAULT_ANALYSIS_TTL, clock: Clock = utc_now) -> None:
        """Initialize an empty cache."""
        self._store: TTLStore[Analysis] = TTLStore(ttl, clock=clock, name="analysis-cache")

    @property
    def ttl(self) -> timedelta:
        """Return the time-to-live of cached analyses."""
        return self._store.ttl

    def put(self, image_id: str, analysis: Analysis) -> None:
        """Cache ``analysis`` for ``image_id``, replacing any earlier entry."""
        self._store.put(image_id, analysis)

    def get(self, image_id: str) -> Analysis | None:
        """Return the cached analysis, or ``None`` when absent or expired."""
        return self._store.get(image_id)

    def delete(self, image_id: str) -> bool:
        """Drop the cached analysis for ``image_id``."""
        return self._store.delete(image_id)

    def sweep(self) -> tuple[str, ...]:
        """Remove expired analyses."""
        return self._store.sweep()

    def start(self) -> None:
        """Start the background sweeper."""
        self._store.start()

    def stop(self) -> None:
        """Stop the background sweeper."""
        self._store.stop()
