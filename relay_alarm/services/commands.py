"""
Command handlers.

The boundary between the HTTP layer and the core: each command validates its
input, mutates the owned SystemState and forces one immediate evaluation.
Validation errors are raised before anything is touched.
"""
import logging
from typing import Any, Dict

from relay_alarm.core.config.models import ActiveTrigger, RelayConfig, TestOverride, validate_relay_configs
from relay_alarm.core.errors import InvalidShape, RelayDisabled
from relay_alarm.core.state import SystemState
from relay_alarm.services.scheduler import SchedulerLoop

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class AlarmController:
    def __init__(self, scheduler: SchedulerLoop, test_duration_ms: int = 500):
        self.scheduler = scheduler
        self.test_duration_ms = test_duration_ms

    @property
    def state(self) -> SystemState:
        return self.scheduler.state

    def snapshot(self) -> Dict[str, Any]:
        """Current wire payload, used for catch-up on connect."""
        return self.state.to_payload().model_dump()

    def settings_view(self) -> Dict[str, Any]:
        state = self.state
        return {
            "alarmEnabled": state.alarmEnabled,
            "relays": {relay_id: config.model_dump() for relay_id, config in state.relays.items()},
            "currentRelayStates": dict(state.relayStates),
            "triggerActive": state.triggerActive,
        }

    def fire_trigger(self, source: str = "order") -> bool:
        """
        Start a trigger from a snapshot of the live relay config.

        Returns:
            False if the alarm is disabled and nothing happened
        """
        state = self.state
        if not state.alarmEnabled:
            logger.info(f"Main alarm is disabled, ignoring {source} trigger.")
            return False

        if state.activeTrigger is not None:
            # A running trigger is replaced, its remaining schedule is dropped
            logger.warning(f"Replacing in-flight {state.activeTrigger.source} trigger with a new {source} trigger.")

        state.activeTrigger = ActiveTrigger(
            source=source,
            startedAt=self.scheduler.clock(),
            relayConfig={relay_id: config.model_copy(deep=True) for relay_id, config in state.relays.items()},
        )
        logger.info(f"Alarm trigger activated for {source} event.")
        self.scheduler.evaluate_now()
        return True

    def update_config(self, alarm_enabled: Any, relays: Any) -> Dict[str, RelayConfig]:
        """
        Replace the live configuration. An in-flight trigger keeps its own
        snapshot.

        Raises:
            InvalidShape: bad `alarm_enabled` type or relay id set
            InvalidRange: a relay timing value out of bounds
        """
        if not isinstance(alarm_enabled, bool):
            raise InvalidShape("Invalid alarm enabled status.")
        validated = validate_relay_configs(relays, self.state.relay_ids)

        state = self.state
        state.alarmEnabled = alarm_enabled
        state.relays = validated
        self.scheduler.store.schedule_save(state.to_config())
        logger.info(f"Settings updated: alarmEnabled={alarm_enabled}")
        self.scheduler.evaluate_now()
        return validated

    def fire_test(self, relay_id: str) -> TestOverride:
        """
        Drive a single relay for the fixed test duration using its configured
        pulse.

        Raises:
            InvalidShape: unknown relay id
            RelayDisabled: the relay is disabled
        """
        relay_id = str(relay_id)
        config = self.state.relays.get(relay_id)
        if config is None:
            raise InvalidShape("Invalid relay ID.")
        if not config.enabled:
            raise RelayDisabled(f"Relay {relay_id} is disabled and cannot be tested.")

        override = TestOverride(
            relayId=relay_id,
            startedAt=self.scheduler.clock(),
            durationMs=self.test_duration_ms,
            pulseMs=config.pulseMs,
        )
        self.state.testOverride = override
        logger.info(f"Test command sent for relay {relay_id}.")
        self.scheduler.evaluate_now()
        return override

    def deactivate(self) -> bool:
        """
        Clear any trigger and test override.

        Returns:
            True if something was active
        """
        state = self.state
        was_active = state.has_work or state.triggerActive
        state.activeTrigger = None
        state.testOverride = None
        if was_active:
            logger.info("Deactivate command issued. Active trigger cleared.")
        self.scheduler.evaluate_now()
        return was_active
