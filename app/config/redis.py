"""
Redis configuration for the spa booking engine.
Provides Redis client construction for the shared availability cache.
"""

import logging

from redis import Redis

from app.config.settings import Settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings) -> Redis:
    """Create a Redis client with string responses from REDIS_URL"""
    client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    logger.info("Redis client created", extra={"redis_url": settings.REDIS_URL.split("@")[-1]})
    return client
