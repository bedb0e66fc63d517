"""Process-local TTL cache with lazy expiry and substring invalidation."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple, Type, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING: Any = object()

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60


class Cache(Protocol):
    """Protocol describing cache operations used by the entitlement layer."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any, ttl: float) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...

    def invalidate(self, patterns: Iterable[str]) -> int:
        ...

    def get_cached_or_fetch(
        self,
        key: str,
        producer: Callable[[], T],
        ttl: float,
        *,
        expected_type: Optional[Union[Type[Any], Tuple[Type[Any], ...]]] = None,
    ) -> T:
        ...


@dataclass(frozen=True)
class _CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time view of the cache table."""

    size: int
    keys: Tuple[str, ...]


class TTLCache:
    """In-memory key/value store with per-entry expiry.

    Expiry is checked on every read, so the background sweep only bounds
    memory. The read-through path takes no lock across the producer call:
    concurrent misses for one key may each run the producer and the last
    write wins.
    """

    def __init__(
        self,
        *,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if sweep_interval <= 0:
            raise ValueError("sweep_interval must be positive")
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock or time.monotonic
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    # Lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Start the background sweep thread if it is not already running."""

        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="ttl-cache-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.info("Cache sweeper started interval=%ss", self._sweep_interval)

    def stop(self, *, clear: bool = True, timeout: Optional[float] = 5.0) -> None:
        """Stop the sweep thread and optionally drop all entries."""

        self._stop_event.set()
        sweeper = self._sweeper
        self._sweeper = None
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout)
            logger.info("Cache sweeper stopped")
        if clear:
            self.clear()

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def __enter__(self) -> "TTLCache":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # Core operations -----------------------------------------------------

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        effective_ttl = self._default_ttl if ttl is None else ttl
        entry = _CacheEntry(value=value, stored_at=self._clock(), ttl=effective_ttl)
        with self._lock:
            self._entries[key] = entry

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.is_expired(self._clock()):
                # Only evict the entry we inspected; a concurrent set may have replaced it.
                if self._entries.get(key) is entry:
                    del self._entries[key]
                return default
            return entry.value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def invalidate(self, patterns: Iterable[str]) -> int:
        """Delete every key containing any of ``patterns`` as a substring."""

        pattern_list = [pattern for pattern in patterns if pattern]
        if not pattern_list:
            return 0
        removed = 0
        for pattern in pattern_list:
            for key in self._snapshot_keys():
                if pattern in key and self.delete(key):
                    removed += 1
        logger.debug("Invalidated %d cache keys for patterns=%s", removed, pattern_list)
        return removed

    def get_cached_or_fetch(
        self,
        key: str,
        producer: Callable[[], T],
        ttl: Optional[float] = None,
        *,
        expected_type: Optional[Union[Type[Any], Tuple[Type[Any], ...]]] = None,
    ) -> T:
        """Return the fresh cached value for ``key`` or produce and store it.

        ``expected_type`` guards against a mistyped entry: a cached value that
        is not an instance of it is treated as a miss and overwritten.
        """

        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            if expected_type is None or isinstance(cached, expected_type):
                logger.debug("Cache hit key=%s", key)
                return cached
            logger.warning(
                "Discarding cached value of unexpected type key=%s type=%s",
                key,
                type(cached).__name__,
            )

        logger.debug("Cache miss key=%s", key)
        value = producer()
        self.set(key, value, ttl)
        return value

    def stats(self) -> CacheStats:
        keys = self._snapshot_keys()
        return CacheStats(size=len(keys), keys=tuple(keys))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # Sweep ---------------------------------------------------------------

    def sweep(self) -> int:
        """Evict expired entries and return how many were removed."""

        now = self._clock()
        with self._lock:
            snapshot = list(self._entries.items())
        removed = 0
        for key, entry in snapshot:
            if not entry.is_expired(now):
                continue
            with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
                    removed += 1
        if removed:
            logger.debug("Cache sweep evicted %d expired entries", removed)
        return removed

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._sweep_interval):
            try:
                self.sweep()
            except Exception:  # pragma: no cover - keep the sweeper alive
                logger.exception("Cache sweep failed")

    def _snapshot_keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())


__all__ = ["Cache", "CacheStats", "TTLCache", "DEFAULT_SWEEP_INTERVAL_SECONDS", "DEFAULT_TTL_SECONDS"]
