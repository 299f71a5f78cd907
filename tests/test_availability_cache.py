"""Tests for the availability cache and its backends."""

from datetime import time, timedelta
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.exceptions import CacheError
from app.services.availability.availability_cache import AvailabilityCache
from app.services.cache import MemoryCacheBackend, RedisCacheBackend
from tests.conftest import TEST_DATE



class CountingCalculator:
    """Wraps a calculator and counts computations."""

    def __init__(self, calculator):
        self.calculator = calculator
        self.summary_calls = 0
        self.slot_calls = 0

    def date_summary(self, start_date, days):
        self.summary_calls += 1
        return self.calculator.date_summary(start_date, days)

    def time_slots(self, slot_date, service_id=None, staff_id=None, room_id=None):
        self.slot_calls += 1
        return self.calculator.time_slots(slot_date, service_id, staff_id, room_id)


@pytest.fixture
def counting(calculator):
    return CountingCalculator(calculator)


@pytest.fixture
def counted_cache(counting, settings, monotonic):
    return AvailabilityCache(counting, MemoryCacheBackend(clock=monotonic), settings, clock=monotonic)


class TestMemoryBackend:
    def test_set_get_and_expiry(self, monotonic):
        backend = MemoryCacheBackend(clock=monotonic)
        backend.set("k", "v", ttl_seconds=10, tags=["date:2024-01-15"])

        assert backend.get("k") == "v"
        monotonic.advance(10)
        assert backend.get("k") is None
        assert backend.size() == 0

    def test_delete_tags(self, monotonic):
        backend = MemoryCacheBackend(clock=monotonic)
        backend.set("a", "1", 60, tags=["t1", "t2"])
        backend.set("b", "2", 60, tags=["t2"])
        backend.set("c", "3", 60, tags=["t3"])

        assert backend.delete_tags(["t2"]) == 2
        assert backend.get("a") is None
        assert backend.get("c") == "3"
        assert backend.clear() == 1


class TestAvailabilityCache:
    def test_read_through_and_stats(self, spa, counted_cache, counting):
        first = counted_cache.get_time_slots(TEST_DATE)
        second = counted_cache.get_time_slots(TEST_DATE)

        assert first == second
        assert counting.slot_calls == 1
        stats = counted_cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert stats["size"] == 1

    def test_keys_include_filters(self, spa, counted_cache, counting):
        counted_cache.get_time_slots(TEST_DATE)
        counted_cache.get_time_slots(TEST_DATE, service_id="svc-couples")
        counted_cache.get_time_slots(TEST_DATE, staff_id="staff-b")

        assert counting.slot_calls == 3

    def test_ttls(self, spa, counted_cache, counting, monotonic, settings):
        counted_cache.get_time_slots(TEST_DATE)
        counted_cache.get_date_summary(TEST_DATE, 7)

        monotonic.advance(settings.SLOT_CACHE_TTL_SECONDS)
        counted_cache.get_time_slots(TEST_DATE)
        counted_cache.get_date_summary(TEST_DATE, 7)
        assert counting.slot_calls == 2
        assert counting.summary_calls == 1

        monotonic.advance(settings.DATE_SUMMARY_CACHE_TTL_SECONDS)
        counted_cache.get_date_summary(TEST_DATE, 7)
        assert counting.summary_calls == 2

    def test_invalidate_evicts_every_key_touching_the_date(self, spa, counted_cache, counting):
        counted_cache.get_time_slots(TEST_DATE)
        counted_cache.get_time_slots(TEST_DATE + timedelta(days=1))
        counted_cache.get_date_summary(TEST_DATE - timedelta(days=3), 7)
        counted_cache.get_date_summary(TEST_DATE + timedelta(days=1), 7)

        counted_cache.invalidate(TEST_DATE)

        counted_cache.get_time_slots(TEST_DATE)
        counted_cache.get_time_slots(TEST_DATE + timedelta(days=1))
        counted_cache.get_date_summary(TEST_DATE - timedelta(days=3), 7)
        counted_cache.get_date_summary(TEST_DATE + timedelta(days=1), 7)
        assert counting.slot_calls == 3
        assert counting.summary_calls == 3

    def test_next_read_after_invalidate_reflects_booking(self, spa, cache):
        before = cache.get_date_summary(TEST_DATE, 1)[0]
        spa.booking(start=time(10, 0), end=time(11, 0))
        cache.invalidate(TEST_DATE)
        after = cache.get_date_summary(TEST_DATE, 1)[0]

        assert after.booked_slots == before.booked_slots + 1

    def test_invalidate_all(self, spa, counted_cache, counting):
        counted_cache.get_time_slots(TEST_DATE)
        counted_cache.get_date_summary(TEST_DATE, 3)

        counted_cache.invalidate_all()

        assert counted_cache.stats()["size"] == 0
        counted_cache.get_time_slots(TEST_DATE)
        assert counting.slot_calls == 2

    def test_preload(self, spa, counted_cache, counting):
        warmed = counted_cache.preload([TEST_DATE, TEST_DATE + timedelta(days=1)], [None, "svc-couples"])

        assert warmed == 4
        counted_cache.get_time_slots(TEST_DATE, service_id="svc-couples")
        assert counting.slot_calls == 4

    def test_failed_invalidation_bypasses_cache(self, spa, counting, settings, monotonic):
        backend = MemoryCacheBackend(clock=monotonic)
        cache = AvailabilityCache(counting, backend, settings, clock=monotonic)
        cache.get_time_slots(TEST_DATE)
        backend.delete_tags = MagicMock(side_effect=CacheError("down"))

        assert cache.invalidate(TEST_DATE) == 0
        cache.get_time_slots(TEST_DATE)
        assert counting.slot_calls == 2

        monotonic.advance(max(settings.DATE_SUMMARY_CACHE_TTL_SECONDS, settings.SLOT_CACHE_TTL_SECONDS))
        cache.get_time_slots(TEST_DATE)
        cache.get_time_slots(TEST_DATE)
        assert counting.slot_calls == 3


class BookingDuringStoreBackend(MemoryCacheBackend):
    """Commits a booking and invalidates its date just before the first store."""

    def __init__(self, clock, on_first_set):
        super().__init__(clock=clock)
        self.on_first_set = on_first_set

    def set(self, key, value, ttl_seconds, tags=()):
        if self.on_first_set is not None:
            callback, self.on_first_set = self.on_first_set, None
            callback()
        super().set(key, value, ttl_seconds, tags)


def _ten_o_clock(slots):
    return next(s for s in slots if s.time == "10:00")


class TestInvalidationRaces:
    """Entries computed before an invalidation never outlive it."""

    def test_invalidation_between_compute_and_store(self, spa, calculator, settings, monotonic):
        cache = None

        def book_and_invalidate():
            spa.booking(staff_id="staff-a", room_id="room-1", start=time(10, 0), end=time(11, 0))
            cache.invalidate(TEST_DATE)

        backend = BookingDuringStoreBackend(monotonic, book_and_invalidate)
        cache = AvailabilityCache(calculator, backend, settings, clock=monotonic)

        stale = _ten_o_clock(cache.get_time_slots(TEST_DATE))
        fresh = _ten_o_clock(cache.get_time_slots(TEST_DATE))

        assert stale.available_staff_count == 2
        assert fresh.available_staff_count == 1
        assert fresh.available_staff_count == _ten_o_clock(calculator.time_slots(TEST_DATE)).available_staff_count

    def test_invalidation_during_compute_skips_store(self, spa, counting, settings, monotonic):
        backend = MemoryCacheBackend(clock=monotonic)
        cache = AvailabilityCache(counting, backend, settings, clock=monotonic)
        real_time_slots = counting.time_slots

        def compute_then_invalidate(*args):
            slots = real_time_slots(*args)
            cache.invalidate(TEST_DATE)
            return slots

        counting.time_slots = compute_then_invalidate
        cache.get_time_slots(TEST_DATE)

        assert backend.size() == 0

    def test_tracked_dates_are_bounded(self, cache):
        limit = AvailabilityCache.MAX_TRACKED_TAGS
        for offset in range(limit + 50):
            cache.invalidate(TEST_DATE + timedelta(days=offset))

        assert len(cache._generations) == limit

    def test_forgotten_dates_still_discard_older_results(self, spa, counting, settings, monotonic):
        backend = MemoryCacheBackend(clock=monotonic)
        cache = AvailabilityCache(counting, backend, settings, clock=monotonic)
        real_time_slots = counting.time_slots

        def compute_then_invalidate_many(*args):
            slots = real_time_slots(*args)
            cache.invalidate(TEST_DATE)
            # Push the date's counter out of the tracked window
            for offset in range(1, AvailabilityCache.MAX_TRACKED_TAGS + 1):
                cache.invalidate(TEST_DATE + timedelta(days=offset))
            return slots

        counting.time_slots = compute_then_invalidate_many
        cache.get_time_slots(TEST_DATE)

        assert backend.size() == 0


class TestRedisBackend:
    """Redis backend against a mocked client."""

    def test_set_writes_value_and_tags(self):
        client = MagicMock()
        pipe = client.pipeline.return_value
        backend = RedisCacheBackend(client, namespace="avail", tag_ttl_seconds=300)

        backend.set("slots:2024-01-15:*:*:*", "[]", 120, tags=["date:2024-01-15"])

        pipe.setex.assert_called_once_with("avail:slots:2024-01-15:*:*:*", 120, "[]")
        pipe.sadd.assert_called_once_with("avail:tag:date:2024-01-15", "slots:2024-01-15:*:*:*")
        pipe.execute.assert_called_once()

    def test_delete_tags(self):
        client = MagicMock()
        client.smembers.return_value = {"k1"}
        client.delete.return_value = 1
        backend = RedisCacheBackend(client, namespace="avail")

        assert backend.delete_tags(["date:2024-01-15"]) == 1
        client.delete.assert_any_call("avail:k1")
        client.delete.assert_any_call("avail:tag:date:2024-01-15")

    def test_read_errors_are_misses_and_invalidation_errors_raise(self):
        client = MagicMock()
        client.get.side_effect = RedisConnectionError("down")
        client.smembers.side_effect = RedisConnectionError("down")
        backend = RedisCacheBackend(client)

        assert backend.get("k") is None
        with pytest.raises(CacheError):
            backend.delete_tags(["date:2024-01-15"])
