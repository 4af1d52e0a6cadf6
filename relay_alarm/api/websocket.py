"""
WebSocket endpoints for real-time relay state.

Two channels feed the same broadcast hub: the device channel, authenticated
by the pre-shared device secret, and the dashboard channel, authenticated by
an operator JWT. Both receive a catch-up snapshot on connect and every
published snapshot after that.
"""
from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, Query
import logging

from relay_alarm.core.dependencies import verify_token_ws
from relay_alarm.services.broadcast import SubscriberKind
from relay_alarm.utils.security import secrets_match
from relay_alarm.utils.websocket_utils import reject, websocket_subscription

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["Relay WebSocket API"])


async def subscriber_session(websocket: WebSocket, kind: SubscriberKind) -> None:
    """Admit an authenticated connection and keep it until the peer leaves."""
    state = websocket.app.state
    async with websocket_subscription(
        websocket,
        state.hub,
        kind,
        state.controller.snapshot,
    ) as subscriber:
        try:
            while True:
                # Subscribers only listen; anything they send is just logged
                message = await websocket.receive_text()
                logger.info(f"Received message from {subscriber.name}: {message}")
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected for {subscriber.name}")
        except Exception as e:
            logger.exception(f"Error in WebSocket session for {subscriber.name}: {e}")


@router.websocket("/device")
async def device_websocket(websocket: WebSocket, secret: str = Query(None)):
    """WebSocket endpoint for the relay device"""
    if not secrets_match(secret, websocket.app.state.settings.DEVICE_SECRET):
        await reject(websocket, "bad device secret")
        return
    await subscriber_session(websocket, SubscriberKind.DEVICE)


@router.websocket("/dashboard")
async def dashboard_websocket(websocket: WebSocket, token: str = Query(None)):
    """WebSocket endpoint for operator dashboards"""
    try:
        verify_token_ws(websocket.app.state.settings, token)
    except HTTPException as e:
        await reject(websocket, e.detail)
        return
    await subscriber_session(websocket, SubscriberKind.OPERATOR)
