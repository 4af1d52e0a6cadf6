# relay_alarm/api/dashboard.py
from fastapi import APIRouter, Body, Depends
from typing import Any, Dict
import logging

from relay_alarm.core.dependencies import get_controller, get_current_user
from relay_alarm.services.commands import AlarmController


logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard API"],
    dependencies=[Depends(get_current_user)],
)

@router.get("/settings")
async def get_settings(controller: AlarmController = Depends(get_controller)):
    """Relay configuration plus the live relay states."""
    return controller.settings_view()

@router.post("/settings")
async def update_settings(
    settings_data: Dict[str, Any] = Body(...),
    controller: AlarmController = Depends(get_controller),
):
    """Replace the alarm toggle and the full relay configuration."""
    alarm_enabled = settings_data.get("alarmEnabled")
    relays = settings_data.get("relays")
    validated = controller.update_config(alarm_enabled, relays)
    return {
        "message": "Settings updated successfully!",
        "settings": {
            "alarmEnabled": alarm_enabled,
            "relays": {relay_id: config.model_dump() for relay_id, config in validated.items()},
        },
    }

@router.post("/commands/test-relay/{relay_id}")
async def test_relay(relay_id: str, controller: AlarmController = Depends(get_controller)):
    override = controller.fire_test(relay_id)
    return {
        "message": f"Test alarm command sent for relay {relay_id}!",
        "testOverride": override.model_dump(),
    }

@router.post("/commands/deactivate-alarm")
async def deactivate_alarm(controller: AlarmController = Depends(get_controller)):
    if controller.deactivate():
        return {"message": "Active alarm cleared!"}
    return {"message": "No active alarm to deactivate."}
