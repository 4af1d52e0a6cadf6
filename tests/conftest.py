"""
Pytest configuration and fixtures for the relay alarm tests.
"""

import pytest

from relay_alarm.core.config.models import RelayConfig, SystemConfig
from relay_alarm.core.state import SystemState
from relay_alarm.services.broadcast import BroadcastHub, Subscriber, SubscriberKind
from relay_alarm.services.commands import AlarmController
from relay_alarm.services.scheduler import SchedulerLoop

RELAY_IDS = ["1", "2", "3", "4"]


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def set(self, now: int) -> None:
        self.now = now


class RecordingStore:
    """Stands in for SettingsStore; remembers every scheduled document."""

    def __init__(self):
        self.saved = []

    def schedule_save(self, config):
        self.saved.append(config)

    async def flush(self):
        return None


class RecordingHub:
    """Stands in for BroadcastHub; remembers every broadcast payload."""

    def __init__(self):
        self.payloads = []

    def broadcast(self, payload):
        self.payloads.append(payload)


class RecordingSubscriber(Subscriber):
    def __init__(self, kind=SubscriberKind.DEVICE, name="recorder", open_=True):
        super().__init__(kind, name)
        self.received = []
        self.open = open_
        self.closed = False

    async def push(self, payload):
        self.received.append(payload)
        return True

    def is_open(self):
        return self.open

    async def close(self):
        self.closed = True


class FailingSubscriber(RecordingSubscriber):
    async def push(self, payload):
        raise ConnectionResetError("peer went away")


def relay(on_time=5000, delay=0, pulse=0, enabled=True) -> RelayConfig:
    return RelayConfig(onTimeMs=on_time, delayMs=delay, pulseMs=pulse, enabled=enabled)


def relay_dict(on_time=5000, delay=0, pulse=0, enabled=True) -> dict:
    return {"onTimeMs": on_time, "delayMs": delay, "pulseMs": pulse, "enabled": enabled}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def hub():
    return RecordingHub()


@pytest.fixture
def relays():
    """Relay 1 solid, relay 2 pulsed after a delay, relay 3 late, relay 4 disabled."""
    return {
        "1": relay(on_time=5000),
        "2": relay(on_time=2000, delay=1000, pulse=200),
        "3": relay(on_time=5000, delay=2000),
        "4": relay(on_time=5000, delay=3000, enabled=False),
    }


@pytest.fixture
def state(relays):
    return SystemState.from_config(SystemConfig(relays=relays))


@pytest.fixture
async def scheduler(state, hub, store, clock):
    loop = SchedulerLoop(state, hub, store, clock=clock, interval_ms=100)
    yield loop
    loop.stop()


@pytest.fixture
async def controller(scheduler):
    return AlarmController(scheduler, test_duration_ms=500)


@pytest.fixture
async def broadcast_hub():
    hub = BroadcastHub()
    yield hub
    await hub.close_all()


@pytest.fixture
async def live_controller(state, store, clock, broadcast_hub):
    """Controller publishing through a real BroadcastHub."""
    loop = SchedulerLoop(state, broadcast_hub, store, clock=clock, interval_ms=100)
    yield AlarmController(loop, test_duration_ms=500)
    loop.stop()
