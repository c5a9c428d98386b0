"""
Event ingestion endpoint
Location: app/api/v1/events.py

The whole intent pipeline runs synchronously inside this request, in one
transaction. No queues, no background jobs.
"""

import logging

import sentry_sdk
from fastapi import APIRouter, Depends, HTTPException, Request

from analytics.errors import EventProcessingError
from app.core.config import get_settings
from app.core.dependencies import get_event_service
from app.core.rate_limit import limiter
from app.services.event_service import EventService
from schemas.events import EventAccepted, EventPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=EventAccepted)
@limiter.limit(get_settings().EVENTS_RATE_LIMIT)
def ingest_event(
    request: Request,
    payload: EventPayload,
    service: EventService = Depends(get_event_service),
):
    try:
        outcome = service.ingest(payload)
    except EventProcessingError as e:
        sentry_sdk.capture_exception(e)
        raise HTTPException(status_code=500, detail="Internal server error")

    confidence = None
    if outcome.result is not None:
        confidence = outcome.result.state.confidence.value

    return EventAccepted(status=outcome.status, confidence=confidence)
