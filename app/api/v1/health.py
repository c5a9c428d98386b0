import logging

import redis
import sentry_sdk
from fastapi import APIRouter, HTTPException, Request

from app.core.dependencies import get_store
from app.core.rate_limit import limiter
from app.utils.redis_client import get_redis_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
@limiter.limit("500/minute")
def health(request: Request):
    try:
        get_store().ping()
    except Exception as e:
        logger.error("Health check failed: %s", e)
        sentry_sdk.capture_exception(e)
        raise HTTPException(503, "Health check failed")

    cache = "disabled"
    client = get_redis_client()
    if client is not None:
        try:
            cache = "connected" if client.ping() else "disconnected"
        except redis.RedisError:
            cache = "disconnected"

    return {"status": "healthy", "cache": cache}
