from pydantic import BaseModel, Field, StrictBool
from typing import Any, Dict, Optional
from datetime import datetime
from uuid import UUID

from analytics.models import EventType, RawEvent


class EventPayload(BaseModel):
    """Body of POST /api/events, as sent by the storefront SDK."""

    event_type: EventType
    timestamp: datetime
    session_id: UUID
    anonymous_user_id: UUID
    shop_domain: str = Field(min_length=1)
    is_new_user: StrictBool
    event_id: Optional[str] = Field(default=None, max_length=128)
    shopify_customer_id: Optional[str] = None
    page_url: Optional[str] = None
    page_type: Optional[str] = None
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    element_text: Optional[str] = None
    element_type: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_raw_event(self) -> RawEvent:
        return RawEvent(
            event_type=self.event_type,
            timestamp=self.timestamp,
            session_id=str(self.session_id),
            element_text=self.element_text,
            element_type=self.element_type,
            metadata=self.metadata or {},
            event_id=self.event_id,
        )


class EventAccepted(BaseModel):
    status: str
    confidence: Optional[str] = None
