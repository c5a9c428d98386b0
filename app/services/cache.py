# app/services/cache.py

from typing import Optional
import json
import logging

import redis

logger = logging.getLogger(__name__)


class CacheService:
    """
    Read-through JSON cache. A missing or unreachable Redis is a cache miss,
    never an error.
    """

    def __init__(self, client: Optional[redis.Redis] = None, ttl: int = 30):
        self.client = client
        self.ttl = ttl

    def get(self, key: str) -> Optional[dict]:
        if self.client is None:
            return None
        try:
            value = self.client.get(key)
            return json.loads(value) if value else None
        except (redis.RedisError, ValueError) as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

    def set(self, key: str, value, ttl: Optional[int] = None) -> None:
        if self.client is None:
            return
        try:
            self.client.setex(key, ttl or self.ttl, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)
