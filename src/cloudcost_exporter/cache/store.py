"""
In-memory snapshot cache with TTL and stale data support.

Holds the most recent successfully fetched cloud cost snapshot. Reads are
classified as fresh (within ttl), stale (within ttl + max_stale) or expired.
Stale data is still served so scrapes degrade gracefully while the upstream
is slow or unavailable; expired data is retained but reported as absent.
"""

import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import NamedTuple

from ..models import CloudCostResponse


class Freshness(Enum):
    """Classification of a cache entry by age."""

    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


def classify(age: float, ttl: float, max_stale: float) -> Freshness:
    """
    Classify an entry age against the freshness windows.

    Args:
        age: Seconds since the entry was stored
        ttl: Seconds the entry is considered fresh
        max_stale: Seconds past ttl the entry may still be served

    Returns:
        FRESH if age <= ttl, STALE if age <= ttl + max_stale, else EXPIRED
    """
    if age <= ttl:
        return Freshness.FRESH
    if age <= ttl + max_stale:
        return Freshness.STALE
    return Freshness.EXPIRED


class CacheLookup(NamedTuple):
    """Result of SnapshotCache.get()."""

    snapshot: CloudCostResponse | None
    is_stale: bool
    found: bool


class ReadWriteLock:
    """Lock allowing many concurrent readers or a single writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    def acquire_read(self):
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    def read(self):
        return _Guard(self.acquire_read, self.release_read)

    def write(self):
        return _Guard(self.acquire_write, self.release_write)


class _Guard:
    def __init__(self, acquire, release):
        self._acquire = acquire
        self._release = release

    def __enter__(self):
        self._acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._release()
        return False


class SnapshotCache:
    """Single-entry cache for cloud cost snapshots."""

    def __init__(self, ttl: float, max_stale: float, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the snapshot cache.

        Args:
            ttl: Seconds a snapshot is served as fresh
            max_stale: Seconds past ttl a snapshot is still served as stale
            clock: Monotonic time source in seconds
        """
        self.ttl = ttl
        self.max_stale = max_stale
        self._clock = clock
        self._lock = ReadWriteLock()
        self._snapshot: CloudCostResponse | None = None
        self._fetched_at = 0.0

        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self) -> CacheLookup:
        """Return the cached snapshot with its staleness, counting a hit or miss."""
        with self._lock.read():
            snapshot = self._snapshot
            fetched_at = self._fetched_at

        if snapshot is None:
            self._record(hit=False)
            return CacheLookup(None, False, False)

        freshness = classify(self._clock() - fetched_at, self.ttl, self.max_stale)
        if freshness is Freshness.EXPIRED:
            self._record(hit=False)
            return CacheLookup(None, False, False)

        self._record(hit=True)
        return CacheLookup(snapshot, freshness is Freshness.STALE, True)

    def set(self, snapshot: CloudCostResponse) -> None:
        """Replace the cached snapshot and reset its age."""
        with self._lock.write():
            self._snapshot = snapshot
            self._fetched_at = self._clock()

    def age(self) -> float:
        """Seconds since the snapshot was stored, or 0 when empty."""
        with self._lock.read():
            if self._snapshot is None:
                return 0.0
            return self._clock() - self._fetched_at

    def stats(self) -> tuple[int, int]:
        """Return (hits, misses) since creation."""
        with self._stats_lock:
            return self._hits, self._misses

    def is_populated(self) -> bool:
        """True once any snapshot has been stored, regardless of freshness."""
        with self._lock.read():
            return self._snapshot is not None

    def _record(self, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1
