"""
Broadcast hub.

Keeps the set of connected subscribers and fans state snapshots out to them.
Delivery is fire-and-forget and most-recent-state-wins: every subscriber has
at most one pending snapshot and one sender task, so a slow subscriber never
builds a backlog and never holds up the others.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]
Snapshot = Callable[[], Payload]


class SubscriberKind(str, Enum):
    DEVICE = "device"
    OPERATOR = "operator"


class Subscriber:
    """
    A capability-tagged channel. Transports implement `push`, returning
    False (or raising) when the channel is gone.
    """

    def __init__(self, kind: SubscriberKind, name: str):
        self.kind = kind
        self.name = name

    async def push(self, payload: Payload) -> bool:
        raise NotImplementedError

    def is_open(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} ({self.kind.value})>"


class BroadcastHub:
    def __init__(self):
        self._subscribers: Set[Subscriber] = set()
        self._pending: Dict[Subscriber, Payload] = {}
        self._senders: Dict[Subscriber, asyncio.Task] = {}
        self._keepalive: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber: Subscriber) -> bool:
        return subscriber in self._subscribers

    def subscribers(self, kind: Optional[SubscriberKind] = None) -> List[Subscriber]:
        return [s for s in self._subscribers if kind is None or s.kind == kind]

    def add(self, subscriber: Subscriber, snapshot: Payload) -> None:
        """Admit a subscriber and queue a full catch-up snapshot for it."""
        self._subscribers.add(subscriber)
        logger.info(f"{subscriber.kind.value} subscriber {subscriber.name} connected ({len(self)} total)")
        self._enqueue(subscriber, snapshot)

    def remove(self, subscriber: Subscriber) -> None:
        if subscriber not in self._subscribers:
            return
        self._subscribers.discard(subscriber)
        self._pending.pop(subscriber, None)
        logger.info(f"{subscriber.kind.value} subscriber {subscriber.name} disconnected ({len(self)} remaining)")

    def broadcast(self, payload: Payload) -> None:
        """Queue `payload` for every subscriber and return immediately."""
        for subscriber in list(self._subscribers):
            self._enqueue(subscriber, payload)

    async def drain(self) -> None:
        """Wait until every queued snapshot has been delivered or dropped."""
        while self._senders:
            await asyncio.gather(*list(self._senders.values()), return_exceptions=True)

    async def probe(self, payload: Payload) -> None:
        """
        Liveness sweep: drop subscribers whose transport is closed and resend
        `payload`, the current state, to the rest so that silent dead peers
        fail a send.
        """
        for subscriber in list(self._subscribers):
            if not subscriber.is_open():
                logger.info(f"Pruning dead subscriber {subscriber.name}")
                self.remove(subscriber)
            else:
                self._enqueue(subscriber, payload)

    def start_keepalive(self, interval: float, snapshot: Snapshot) -> None:
        """Probe every `interval` seconds with a fresh `snapshot()`."""
        if self._keepalive is not None and not self._keepalive.done():
            return
        self._keepalive = asyncio.get_running_loop().create_task(self._keepalive_loop(interval, snapshot))

    async def stop_keepalive(self) -> None:
        task, self._keepalive = self._keepalive, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def close_all(self) -> None:
        await self.stop_keepalive()
        await self.drain()
        for subscriber in list(self._subscribers):
            self.remove(subscriber)
            await subscriber.close()

    def _enqueue(self, subscriber: Subscriber, payload: Payload) -> None:
        self._pending[subscriber] = payload
        sender = self._senders.get(subscriber)
        if sender is None or sender.done():
            self._senders[subscriber] = asyncio.get_running_loop().create_task(self._send_loop(subscriber))

    async def _send_loop(self, subscriber: Subscriber) -> None:
        try:
            while subscriber in self._pending:
                payload = self._pending.pop(subscriber)
                try:
                    delivered = await subscriber.push(payload)
                except Exception as e:
                    logger.warning(f"Push to {subscriber.name} failed: {e}")
                    delivered = False
                if not delivered:
                    self.remove(subscriber)
                    await subscriber.close()
                    return
        finally:
            if self._senders.get(subscriber) is asyncio.current_task():
                del self._senders[subscriber]

    async def _keepalive_loop(self, interval: float, snapshot: Snapshot) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.probe(snapshot())
