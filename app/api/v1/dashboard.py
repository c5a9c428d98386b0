"""
Dashboard API Endpoints
Aggregate KPIs + live feed of sessions with detected intent
Location: app/api/v1/dashboard.py
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.core.dependencies import get_query_service
from app.services.intent_query import IntentQueryService
from schemas.intent import DashboardMetrics, FeedPage

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def require_shop_domain(shop_domain: Optional[str] = None) -> str:
    if not shop_domain:
        raise HTTPException(status_code=400, detail="Missing required query param: shop_domain")
    return shop_domain


@router.get("/metrics", response_model=DashboardMetrics)
def metrics(
    shop_domain: str = Depends(require_shop_domain),
    service: IntentQueryService = Depends(get_query_service),
):
    return service.metrics(shop_domain)


@router.get("/feed", response_model=FeedPage)
def feed(
    shop_domain: str = Depends(require_shop_domain),
    page: Optional[int] = None,
    limit: Optional[int] = None,
    confidence: Optional[str] = None,
    service: IntentQueryService = Depends(get_query_service),
):
    return service.feed(shop_domain, page=page, limit=limit, confidence=confidence)
