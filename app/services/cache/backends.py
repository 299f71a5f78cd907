"""
Cache backends for the availability cache.

Both backends store serialized strings under a key together with a set
of tags; ``delete_tags`` evicts every key carrying any of the tags.
"""

import threading
import time
from typing import Callable, Dict, Iterable, Optional, Set, Tuple

from redis import Redis
from redis.exceptions import RedisError

from app.core.exceptions import CacheError
from app.core.logging import get_logger

logger = get_logger(__name__)


class CacheBackend:
    """Abstract cache backend interface"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl_seconds: int, tags: Iterable[str] = ()) -> None:
        raise NotImplementedError

    def delete_tags(self, tags: Iterable[str]) -> int:
        raise NotImplementedError

    def clear(self) -> int:
        raise NotImplementedError

    def size(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryCacheBackend(CacheBackend):
    """In-process cache backend guarded by a lock"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float, Tuple[str, ...]]] = {}
        self._tags: Dict[str, Set[str]] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at, _ = entry
            if self._clock() >= expires_at:
                self._evict(key)
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int, tags: Iterable[str] = ()) -> None:
        tags = tuple(tags)
        with self._lock:
            if key in self._entries:
                self._evict(key)
            self._entries[key] = (value, self._clock() + ttl_seconds, tags)
            for tag in tags:
                self._tags.setdefault(tag, set()).add(key)

    def delete_tags(self, tags: Iterable[str]) -> int:
        removed = 0
        with self._lock:
            for tag in tags:
                for key in list(self._tags.get(tag, ())):
                    if key in self._entries:
                        self._evict(key)
                        removed += 1
                self._tags.pop(tag, None)
        return removed

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._tags.clear()
            return count

    def size(self) -> int:
        with self._lock:
            now = self._clock()
            for key in [k for k, (_, expires_at, _) in self._entries.items() if now >= expires_at]:
                self._evict(key)
            return len(self._entries)

    def _evict(self, key: str) -> None:
        _, _, tags = self._entries.pop(key)
        for tag in tags:
            keys = self._tags.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._tags[tag]


class RedisCacheBackend(CacheBackend):
    """
    Redis cache backend shared by every application process.

    Each tag is a Redis set holding the keys that carry it. Tag sets live
    at least as long as the longest entry TTL so an invalidation always
    finds every live key.
    """

    def __init__(self, client: Redis, namespace: str = "availability", tag_ttl_seconds: int = 300):
        self._redis = client
        self._namespace = namespace
        self._tag_ttl = tag_ttl_seconds

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._namespace}:tag:{tag}"

    def get(self, key: str) -> Optional[str]:
        try:
            return self._redis.get(self._key(key))
        except RedisError as e:
            logger.error(f"Cache get failed for key '{key}': {e}")
            return None

    def set(self, key: str, value: str, ttl_seconds: int, tags: Iterable[str] = ()) -> None:
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.setex(self._key(key), ttl_seconds, value)
            for tag in tags:
                pipe.sadd(self._tag_key(tag), key)
                pipe.expire(self._tag_key(tag), max(self._tag_ttl, ttl_seconds))
            pipe.execute()
        except RedisError as e:
            logger.error(f"Cache set failed for key '{key}': {e}")

    def delete_tags(self, tags: Iterable[str]) -> int:
        try:
            removed = 0
            for tag in tags:
                tag_key = self._tag_key(tag)
                members = self._redis.smembers(tag_key)
                if members:
                    removed += self._redis.delete(*[self._key(member) for member in members])
                self._redis.delete(tag_key)
            return removed
        except RedisError as e:
            raise CacheError(f"Cache invalidation failed: {e}") from e

    def clear(self) -> int:
        try:
            removed = 0
            batch = []
            for key in self._redis.scan_iter(match=f"{self._namespace}:*", count=500):
                batch.append(key)
                if len(batch) >= 500:
                    removed += self._redis.delete(*batch)
                    batch = []
            if batch:
                removed += self._redis.delete(*batch)
            return removed
        except RedisError as e:
            raise CacheError(f"Cache clear failed: {e}") from e

    def size(self) -> int:
        try:
            return sum(
                1 for key in self._redis.scan_iter(match=f"{self._namespace}:*", count=500)
                if not key.startswith(f"{self._namespace}:tag:")
            )
        except RedisError as e:
            logger.error(f"Cache size lookup failed: {e}")
            return 0

    def close(self) -> None:
        self._redis.close()
