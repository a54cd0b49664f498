"""
Tests for the snapshot cache.

Covers freshness classification, hit/miss accounting, age reporting and
thread safety of concurrent reads and writes.
"""

import threading

import pytest
from conftest import FakeClock, make_cost_item, make_snapshot
from hypothesis import given, settings
from hypothesis import strategies as st

from cloudcost_exporter.cache.store import (
    CacheLookup,
    Freshness,
    ReadWriteLock,
    SnapshotCache,
    classify,
)

durations = st.floats(min_value=0, max_value=1e6, allow_nan=False, allow_infinity=False)


@pytest.fixture
def snapshot():
    return make_snapshot([make_cost_item(list_cost=10.0)])


@pytest.fixture
def cache(clock):
    return SnapshotCache(ttl=60, max_stale=300, clock=clock)


class TestClassify:
    """Test cases for the freshness classification."""

    @pytest.mark.parametrize(
        "age, expected",
        [
            (0, Freshness.FRESH),
            (60, Freshness.FRESH),
            (60.001, Freshness.STALE),
            (360, Freshness.STALE),
            (360.001, Freshness.EXPIRED),
        ],
    )
    def test_boundaries(self, age, expected):
        assert classify(age, ttl=60, max_stale=300) is expected

    def test_zero_max_stale_skips_stale_window(self):
        assert classify(61, ttl=60, max_stale=0) is Freshness.EXPIRED


@given(ttl=durations, max_stale=durations, age=durations)
@settings(max_examples=200)
def test_get_follows_freshness_windows(ttl, max_stale, age):
    """Cache reads agree with the ttl / ttl + max_stale windows for any durations."""
    clock = FakeClock()
    cache = SnapshotCache(ttl=ttl, max_stale=max_stale, clock=clock)
    snapshot = make_snapshot([])
    cache.set(snapshot)
    clock.advance(age)

    lookup = cache.get()

    if age <= ttl:
        assert lookup == CacheLookup(snapshot, False, True)
    elif age <= ttl + max_stale:
        assert lookup == CacheLookup(snapshot, True, True)
    else:
        assert lookup == CacheLookup(None, False, False)


class TestSnapshotCache:
    """Test cases for SnapshotCache."""

    def test_get_on_empty_cache_is_a_miss(self, cache):
        lookup = cache.get()

        assert lookup == CacheLookup(None, False, False)
        assert cache.stats() == (0, 1)

    def test_set_then_get_is_fresh(self, cache, snapshot):
        cache.set(snapshot)

        lookup = cache.get()

        assert lookup.snapshot is snapshot
        assert lookup.is_stale is False
        assert lookup.found is True
        assert cache.stats() == (1, 0)

    def test_stale_read_counts_as_hit(self, cache, clock, snapshot):
        cache.set(snapshot)
        clock.advance(120)

        assert cache.get() == CacheLookup(snapshot, True, True)
        assert cache.stats() == (1, 0)

    def test_expired_read_counts_as_miss_but_keeps_data(self, cache, clock, snapshot):
        cache.set(snapshot)
        clock.advance(361)

        assert cache.get() == CacheLookup(None, False, False)
        assert cache.stats() == (0, 1)
        assert cache.is_populated() is True

    def test_set_resets_expired_entry_to_fresh(self, cache, clock, snapshot):
        cache.set(make_snapshot([]))
        clock.advance(1000)

        cache.set(snapshot)

        assert cache.get() == CacheLookup(snapshot, False, True)

    def test_age(self, cache, clock, snapshot):
        assert cache.age() == 0.0

        cache.set(snapshot)
        clock.advance(42.5)

        assert cache.age() == 42.5

    def test_is_populated(self, cache, snapshot):
        assert cache.is_populated() is False
        cache.set(snapshot)
        assert cache.is_populated() is True

    def test_stats_are_monotonic(self, cache, clock, snapshot):
        cache.get()
        cache.set(snapshot)
        cache.get()
        cache.get()
        clock.advance(10_000)
        cache.get()

        assert cache.stats() == (2, 2)

    def test_concurrent_access(self, snapshot):
        """Many threads reading and writing never corrupt counters or deadlock."""
        cache = SnapshotCache(ttl=3600, max_stale=3600)
        workers = 10
        iterations = 100
        errors = []
        start = threading.Barrier(workers)

        def worker():
            try:
                start.wait()
                for _ in range(iterations):
                    cache.set(snapshot)
                    cache.get()
                    cache.age()
                    cache.stats()
                    cache.is_populated()
            except Exception as e:  # pragma: no cover - surfaced via assertion
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert not any(thread.is_alive() for thread in threads)
        assert errors == []
        hits, misses = cache.stats()
        assert hits + misses == workers * iterations
        assert misses == 0


class TestReadWriteLock:
    """Test cases for the reader/writer lock."""

    def test_readers_do_not_block_each_other(self):
        lock = ReadWriteLock()
        lock.acquire_read()

        second_reader = threading.Thread(target=lambda: (lock.acquire_read(), lock.release_read()))
        second_reader.start()
        second_reader.join(timeout=1)

        assert not second_reader.is_alive()
        lock.release_read()

    def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        acquired = threading.Event()

        def writer():
            with lock.write():
                acquired.set()

        lock.acquire_read()
        thread = threading.Thread(target=writer)
        thread.start()

        assert not acquired.wait(0.1)

        lock.release_read()
        thread.join(timeout=1)
        assert acquired.is_set()
