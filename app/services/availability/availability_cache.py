"""
Read-through cache in front of the availability calculator.

Entries are tagged with every date their key touches, so
``invalidate(date)`` evicts summary ranges that include the date as
well as slot queries on it. Only read paths consult the cache; booking
writes always validate against live storage and invalidate the touched
dates before they report success.
"""

import json
import threading
import time
from collections import OrderedDict
from datetime import date, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.config.settings import Settings, settings as default_settings
from app.core.exceptions import CacheError
from app.core.logging import get_logger
from app.services.availability.availability_calculator import (
    AvailabilityCalculator,
    DateAvailabilitySummary,
    TimeSlot,
)
from app.services.cache.backends import CacheBackend

logger = get_logger(__name__)


def _date_tag(day: date) -> str:
    return f"date:{day.isoformat()}"


class AvailabilityCache:
    """
    Availability cache with TTLs, per-date invalidation and hit statistics.

    Constructed once at application startup and closed at shutdown.
    """

    # Invalidation counters kept for the most recently invalidated dates
    MAX_TRACKED_TAGS = 512

    def __init__(
        self,
        calculator: AvailabilityCalculator,
        backend: CacheBackend,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.calculator = calculator
        self.backend = backend
        self.settings = settings or default_settings
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._bypass_until = 0.0
        self._generations: "OrderedDict[str, int]" = OrderedDict()
        self._epoch = 0
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Read paths
    # -------------------------------------------------------------------------

    def get_date_summary(self, start_date: date, days: int) -> List[DateAvailabilitySummary]:
        key = f"summary:{start_date.isoformat()}:{days}"
        tags = [_date_tag(start_date + timedelta(days=offset)) for offset in range(max(days, 0))]
        payload = self._read_through(
            key,
            lambda: [summary.to_dict() for summary in self.calculator.date_summary(start_date, days)],
            self.settings.DATE_SUMMARY_CACHE_TTL_SECONDS,
            tags,
        )
        return [DateAvailabilitySummary.from_dict(item) for item in payload]

    def get_time_slots(
        self,
        slot_date: date,
        service_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> List[TimeSlot]:
        key = f"slots:{slot_date.isoformat()}:{service_id or '*'}:{staff_id or '*'}:{room_id or '*'}"
        payload = self._read_through(
            key,
            lambda: [slot.to_dict() for slot in self.calculator.time_slots(slot_date, service_id, staff_id, room_id)],
            self.settings.SLOT_CACHE_TTL_SECONDS,
            [_date_tag(slot_date)],
        )
        return [TimeSlot.from_dict(item) for item in payload]

    def preload(self, dates: Iterable[date], service_ids: Iterable[Optional[str]] = (None,)) -> int:
        """Warm slot entries for the given dates and services; returns the number of queries run."""
        service_ids = list(service_ids)
        warmed = 0
        for day in dates:
            for service_id in service_ids:
                self.get_time_slots(day, service_id)
                warmed += 1
        logger.info("Availability cache preloaded", extra={"queries": warmed})
        return warmed

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def invalidate(self, day: date) -> int:
        """Evict every entry whose key touches ``day``."""
        self._bump([_date_tag(day)])
        try:
            removed = self.backend.delete_tags([_date_tag(day)])
        except CacheError:
            self._start_bypass()
            logger.error("Cache invalidation failed; serving live reads", exc_info=True,
                         extra={"date": day.isoformat()})
            return 0
        logger.debug("Availability cache invalidated", extra={"date": day.isoformat(), "removed": removed})
        return removed

    def invalidate_all(self) -> int:
        with self._lock:
            self._epoch += 1
        try:
            removed = self.backend.clear()
        except CacheError:
            self._start_bypass()
            logger.error("Cache clear failed; serving live reads", exc_info=True)
            return 0
        logger.info("Availability cache cleared", extra={"removed": removed})
        return removed

    # -------------------------------------------------------------------------
    # Statistics and lifecycle
    # -------------------------------------------------------------------------

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            hits, misses = self._hits, self._misses
        total = hits + misses
        return {
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / total, 4) if total else 0.0,
            "size": self.backend.size(),
        }

    def close(self) -> None:
        self.backend.close()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _read_through(self, key: str, compute: Callable[[], Any], ttl_seconds: int, tags: List[str]) -> Any:
        if self._clock() < self._bypass_until:
            return compute()

        raw = self.backend.get(key)
        if raw is not None:
            try:
                value = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Failed to decode cached value for {key}")
            else:
                self._count(hit=True)
                logger.debug(f"Cache hit: {key}")
                return value

        self._count(hit=False)
        logger.debug(f"Cache miss: {key}")
        generation = self._generation(tags)
        value = compute()
        # A result computed across an invalidation may already be stale
        if self._generation(tags) != generation:
            return value

        self.backend.set(key, json.dumps(value), ttl_seconds, tags)
        # invalidate() bumps before it deletes: either its delete runs after
        # this store, or the bump is visible here and the entry is dropped
        if self._generation(tags) != generation:
            self._evict_stale(key, tags)
        return value

    def _evict_stale(self, key: str, tags: List[str]) -> None:
        try:
            self.backend.delete_tags(tags)
        except CacheError:
            self._start_bypass()
            logger.error("Failed to evict stale cache entry; serving live reads", exc_info=True,
                         extra={"key": key})
            return
        logger.debug(f"Dropped entry invalidated while stored: {key}")

    def _generation(self, tags: List[str]):
        with self._lock:
            return self._epoch, tuple(self._generations.get(tag, 0) for tag in tags)

    def _bump(self, tags: List[str]) -> None:
        with self._lock:
            for tag in tags:
                self._generations[tag] = self._generations.get(tag, 0) + 1
                self._generations.move_to_end(tag)
            while len(self._generations) > self.MAX_TRACKED_TAGS:
                # Forgetting a counter would let it repeat; the epoch bump
                # discards every result computed before this point instead
                self._generations.popitem(last=False)
                self._epoch += 1

    def _count(self, hit: bool) -> None:
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def _start_bypass(self) -> None:
        # Entries that could not be evicted expire within the longest TTL
        longest = max(self.settings.DATE_SUMMARY_CACHE_TTL_SECONDS, self.settings.SLOT_CACHE_TTL_SECONDS)
        self._bypass_until = self._clock() + longest
