"""
Shared WebSocket utilities for handling connections and wiring them into the
broadcast hub.
"""
import logging
from typing import Any
from fastapi import WebSocket, status
from starlette.websockets import WebSocketState
from contextlib import asynccontextmanager

from relay_alarm.services.broadcast import BroadcastHub, Snapshot, Subscriber, SubscriberKind

logger = logging.getLogger(__name__)


async def safe_send_json(websocket: WebSocket, data: Any) -> bool:
    """Safely send JSON data with proper error handling for closed connections"""
    try:
        await websocket.send_json(data)
        return True
    except RuntimeError as e:
        # Raised once a close message has been sent on this socket
        logger.debug(f"Send on closed WebSocket: {e}")
        return False
    except Exception as e:
        logger.error(f"Error sending JSON data: {e}")
        return False


async def safe_close(websocket: WebSocket, code: int = status.WS_1000_NORMAL_CLOSURE) -> bool:
    """Safely close a WebSocket connection with error handling"""
    try:
        await websocket.close(code=code)
        return True
    except Exception as e:
        logger.debug(f"Error closing WebSocket (likely already closed): {e}")
        return False


async def reject(websocket: WebSocket, reason: str) -> None:
    """Refuse a connection before it is accepted (the client sees HTTP 403)."""
    client = websocket.client.host if websocket.client else "unknown"
    logger.warning(f"⚠️ Unauthorized WebSocket connection attempt on {websocket.url.path} from {client}: {reason}")
    await safe_close(websocket, code=status.WS_1008_POLICY_VIOLATION)


class WebSocketSubscriber(Subscriber):
    """Broadcast hub subscriber backed by an accepted FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket, kind: SubscriberKind):
        super().__init__(kind, f"{kind.value}_{id(websocket)}")
        self.websocket = websocket

    async def push(self, payload) -> bool:
        return await safe_send_json(self.websocket, payload)

    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def close(self) -> None:
        await safe_close(self.websocket)


@asynccontextmanager
async def websocket_subscription(
    websocket: WebSocket,
    hub: BroadcastHub,
    kind: SubscriberKind,
    snapshot: Snapshot,
):
    """
    Context manager for an authenticated subscriber connection that handles:
    - Connection acceptance
    - Admission to the hub with a catch-up snapshot taken after the accept
    - Removal from the hub on exit

    Usage:
        async with websocket_subscription(websocket, hub, kind, snapshot) as subscriber:
            # Receive loop
    """
    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket, kind)
    # No await between reading the state and joining the hub
    hub.add(subscriber, snapshot())
    try:
        yield subscriber
    finally:
        hub.remove(subscriber)
        logger.debug(f"WebSocket connection context for {subscriber.name} exited")
