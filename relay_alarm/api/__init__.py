from fastapi import APIRouter
from relay_alarm.api.auth import router as auth_router
from relay_alarm.api.dashboard import router as dashboard_router
from relay_alarm.api.webhook import router as webhook_router
from relay_alarm.api.websocket import router as websocket_router

api_router = APIRouter()

# Dashboard API lives under /api, the rest at the root
api_router.include_router(dashboard_router, prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(webhook_router)
api_router.include_router(websocket_router)
