from fastapi import APIRouter
from app.api.v1 import events, sessions, dashboard

api_router = APIRouter()
api_router.include_router(events.router)
api_router.include_router(sessions.router)
api_router.include_router(dashboard.router)
