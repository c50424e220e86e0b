"""
In-memory TTL response cache.

The store is a plain keyed map plus a write-triggered sweep. Freshness checks
belong to the caller: ``get`` returns whatever entry is stored, expired or not.
"""

import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, TYPE_CHECKING

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_TTL_SECONDS = 300.0
DEFAULT_SWEEP_THRESHOLD = 100


def make_cache_key(endpoint: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Build the canonical fingerprint for ``(endpoint, params)``.

    Keys are sorted and ``None`` values dropped (they are never sent), so
    parameter insertion order does not matter. Values keep their JSON type,
    so wire-equivalent values (``True`` and ``"true"``, ``1`` and ``"1"``) do
    not share a key and each form is fetched and cached separately.
    """
    normalized = {
        str(key): value
        for key, value in (params or {}).items()
        if value is not None
    }
    serialized = json.dumps(normalized, sort_keys=True, separators=(",", ":"), default=str)
    return f"{endpoint}?{serialized}"


@dataclass(frozen=True)
class CacheEntry:
    """Immutable cached payload."""

    key: str
    payload: Any
    stored_at: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_valid(self, now: float, ttl: float) -> bool:
        return self.age(now) < ttl


class CacheStore:
    """TTL-keyed response store with a lazy, insertion-triggered sweep."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
        *,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self.sweep_threshold = sweep_threshold
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("nasa_access.cache")

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def now(self) -> float:
        return self.clock()

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry for ``key`` regardless of its age."""
        with self._lock:
            return self._entries.get(key)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return entry.is_valid(self.now(), self.ttl_seconds)

    def set(self, key: str, payload: Any) -> CacheEntry:
        """Insert or replace the entry for ``key``, sweeping if over the threshold."""
        entry = CacheEntry(key=key, payload=payload, stored_at=self.now())
        with self._lock:
            self._entries[key] = entry
            if len(self._entries) > self.sweep_threshold:
                self._sweep_locked()
            size = len(self._entries)

        if self.metrics:
            self.metrics.set_gauge("cache_entries", size)
        return entry

    def _sweep_locked(self) -> int:
        now = self.now()
        expired = [
            key for key, entry in self._entries.items()
            if entry.age(now) > self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]

        self.logger.info(
            "Cache sweep completed",
            removed=len(expired),
            remaining=len(self._entries),
            threshold=self.sweep_threshold
        )
        if self.metrics:
            self.metrics.increment_counter("cache_sweeps_total")
        return len(expired)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()

        self.logger.info("Cache cleared", removed=removed)
        if self.metrics:
            self.metrics.set_gauge("cache_entries", 0)

    def stats(self) -> Dict[str, Any]:
        """Snapshot of every entry's age and validity, for diagnostics only."""
        with self._lock:
            snapshot = list(self._entries.values())

        now = self.now()
        entries: List[Dict[str, Any]] = [
            {
                "key": entry.key,
                "age": entry.age(now),
                "valid": entry.is_valid(now, self.ttl_seconds),
            }
            for entry in snapshot
        ]
        return {"size": len(snapshot), "entries": entries}
