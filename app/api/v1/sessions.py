import uuid

from fastapi import APIRouter, Depends, HTTPException

from app.core.dependencies import get_query_service
from app.services.intent_query import IntentQueryService
from schemas.intent import SessionDetail

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/{session_id}", response_model=SessionDetail)
def get_session(
    session_id: str,
    service: IntentQueryService = Depends(get_query_service),
):
    """
    One session end to end: context, intent state, per-type signal
    breakdown (all time), transition history, last 20 raw events.
    """
    try:
        session_id = str(uuid.UUID(session_id))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid session_id format")

    detail = service.session_detail(session_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="Session not found")

    return detail
