from functools import lru_cache

from analytics.intent_engine import IntentEngine
from app.core.config import get_intent_config, get_settings
from app.services.cache import CacheService
from app.services.event_service import EventService
from app.services.intent_query import IntentQueryService
from app.utils.redis_client import get_redis_client


# ============================================================
# STORE
# ============================================================

@lru_cache()
def get_store():
    if get_settings().STORE_BACKEND == "memory":
        from app.repositories.memory import MemoryIntentStore
        return MemoryIntentStore()

    from app.repositories.intent import PostgresIntentStore
    return PostgresIntentStore()


# ============================================================
# SERVICES
# ============================================================

@lru_cache()
def get_intent_engine() -> IntentEngine:
    return IntentEngine(get_intent_config())


@lru_cache()
def get_cache_service() -> CacheService:
    return CacheService(
        client=get_redis_client(),
        ttl=get_settings().METRICS_CACHE_TTL,
    )


@lru_cache()
def get_event_service() -> EventService:
    return EventService(
        store=get_store(),
        engine=get_intent_engine(),
    )


@lru_cache()
def get_query_service() -> IntentQueryService:
    return IntentQueryService(
        store=get_store(),
        cache=get_cache_service(),
    )
