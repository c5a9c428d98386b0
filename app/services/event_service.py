import logging
import uuid
from typing import Optional

from pydantic import BaseModel

from analytics.errors import EventProcessingError
from analytics.intent_engine import IntentEngine, PipelineResult
from schemas.events import EventPayload

logger = logging.getLogger(__name__)


class IngestOutcome(BaseModel):
    status: str  # ok | duplicate
    raw_event_id: Optional[str] = None
    result: Optional[PipelineResult] = None


class EventService:
    """
    Ingests one storefront event. Processing order, all in one unit of work
    scoped to the event's session:

        1. ensure shop
        2. upsert session
        3. insert raw event (duplicate event_id -> stop here)
        4. run the intent pipeline
        5. commit

    Any failure rolls back every write above and surfaces as
    EventProcessingError.
    """

    def __init__(self, store, engine: IntentEngine):
        self.store = store
        self.engine = engine

    def ingest(self, payload: EventPayload) -> IngestOutcome:
        session_id = str(payload.session_id)
        raw_event_id = str(uuid.uuid4())

        try:
            with self.store.unit_of_work(session_id) as uow:
                uow.shops.ensure(payload.shop_domain)
                uow.sessions.upsert(payload)

                if not uow.raw_events.insert(payload, raw_event_id):
                    logger.info(
                        "Duplicate event %s ignored (session_id=%s)",
                        payload.event_id, session_id,
                    )
                    return IngestOutcome(status="duplicate")

                result = self.engine.process_event(
                    payload.to_raw_event(), uow, raw_event_id=raw_event_id
                )
        except Exception as e:
            logger.error(
                "Pipeline error for %s event (session_id=%s): %s",
                payload.event_type.value, session_id, e,
            )
            raise EventProcessingError(session_id) from e

        return IngestOutcome(status="ok", raw_event_id=raw_event_id, result=result)
