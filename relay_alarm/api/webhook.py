import logging
from fastapi import APIRouter, Depends

from relay_alarm.core.dependencies import get_controller, verify_webhook_secret
from relay_alarm.services.commands import AlarmController

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/webhook",
    tags=["Webhook API"],
    dependencies=[Depends(verify_webhook_secret)],
)


@router.post("/order")
async def order_webhook(controller: AlarmController = Depends(get_controller)) -> dict:
    """Fire the main trigger for an incoming order."""
    logger.info("Order webhook received!")
    if controller.fire_trigger("order"):
        return {"status": "success", "message": "Alarm triggered via API."}
    return {"status": "ignored", "message": "Main alarm is disabled, trigger ignored."}
