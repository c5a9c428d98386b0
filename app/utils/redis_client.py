import redis
from functools import lru_cache
from typing import Optional

from app.core.config import get_settings


@lru_cache()
def get_redis_client() -> Optional[redis.Redis]:
    """Shared client, or None when REDIS_URL is not configured."""
    url = get_settings().REDIS_URL
    if not url:
        return None
    return redis.StrictRedis.from_url(url, decode_responses=True)
