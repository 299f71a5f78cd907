from app.services.cache.backends import CacheBackend, MemoryCacheBackend, RedisCacheBackend

__all__ = ["CacheBackend", "MemoryCacheBackend", "RedisCacheBackend"]
