"""
In-memory system state and the wire payload pushed to subscribers.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Union

from relay_alarm.core.config.models import ActiveTrigger, RelayConfig, SystemConfig, TestOverride


class TestOverridePayload(BaseModel):
    """Test override descriptor as the device expects it. `id` is None when idle."""

    id: Optional[Union[int, str]] = None
    onTimeMs: int = 0
    pulseMs: int = 0
    timestamp: int = 0


class StatePayload(BaseModel):
    """Fixed-shape snapshot broadcast to every subscriber."""
    alarmEnabled: bool
    triggerActive: bool
    relays: Dict[str, bool]
    testOverride: TestOverridePayload = Field(default_factory=TestOverridePayload)


class SystemState(BaseModel):
    """
    The single owned state object. Only the AlarmController mutates it, and
    only from the event loop.
    """
    alarmEnabled: bool = True
    relays: Dict[str, RelayConfig]
    activeTrigger: Optional[ActiveTrigger] = None
    testOverride: Optional[TestOverride] = None
    relayStates: Dict[str, bool] = Field(default_factory=dict)
    triggerActive: bool = False

    @classmethod
    def from_config(cls, config: SystemConfig) -> "SystemState":
        return cls(
            alarmEnabled=config.alarmEnabled,
            relays=dict(config.relays),
            activeTrigger=config.activeTrigger,
            testOverride=config.testOverride,
            relayStates={relay_id: False for relay_id in config.relays},
        )

    @property
    def relay_ids(self) -> List[str]:
        return list(self.relays)

    @property
    def has_work(self) -> bool:
        """True while a trigger or an override still needs ticking."""
        return self.activeTrigger is not None or self.testOverride is not None

    def to_config(self) -> SystemConfig:
        return SystemConfig(
            alarmEnabled=self.alarmEnabled,
            relays=dict(self.relays),
            activeTrigger=self.activeTrigger,
            testOverride=self.testOverride,
        )

    def to_payload(self) -> StatePayload:
        override = TestOverridePayload()
        if self.testOverride is not None:
            relay_id = self.testOverride.relayId
            override = TestOverridePayload(
                id=int(relay_id) if relay_id.isdigit() else relay_id,
                onTimeMs=self.testOverride.durationMs,
                pulseMs=self.testOverride.pulseMs,
                timestamp=self.testOverride.startedAt,
            )
        return StatePayload(
            alarmEnabled=self.alarmEnabled,
            triggerActive=self.triggerActive,
            relays=dict(self.relayStates),
            testOverride=override,
        )
