"""
Scheduler loop.

Drives the timing engine. Idle while there is nothing to time; Running (one
asyncio task ticking every `interval_ms`) while an active trigger or a test
override exists. Every evaluation ends with a rearm check, so the loop starts
and stops itself and never runs twice.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

from relay_alarm.core.config.store import SettingsStore
from relay_alarm.core.state import SystemState
from relay_alarm.services.broadcast import BroadcastHub
from relay_alarm.services.timing import evaluate

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

Clock = Callable[[], int]


def epoch_ms() -> int:
    """Wall clock in milliseconds; trigger start times survive restarts."""
    return int(time.time() * 1000)


class SchedulerLoop:
    def __init__(
        self,
        state: SystemState,
        hub: BroadcastHub,
        store: SettingsStore,
        clock: Clock = epoch_ms,
        interval_ms: int = 100,
    ):
        self.state = state
        self.hub = hub
        self.store = store
        self.clock = clock
        self.interval_ms = interval_ms
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def evaluate_now(self) -> bool:
        """
        Run one evaluation and publish it if it matters.

        A snapshot is persisted and broadcast when the relay states or
        `triggerActive` changed, while a test override is in flight (so it is
        seen at least once), or when a trigger or override just finished.

        Returns:
            True if a snapshot was published
        """
        state = self.state
        result = evaluate(
            self.clock(),
            state.alarmEnabled,
            state.activeTrigger,
            state.testOverride,
            state.relay_ids,
        )

        if result.trigger_finished:
            logger.info(f"Active trigger ({state.activeTrigger.source}) completed and cleared.")
            state.activeTrigger = None
        if result.override_finished:
            logger.info(f"Test override on relay {state.testOverride.relayId} finished.")
            state.testOverride = None

        changed = (result.relay_states, result.trigger_active) != (state.relayStates, state.triggerActive)
        publish = (
            changed
            or state.testOverride is not None
            or result.trigger_finished
            or result.override_finished
        )
        if publish:
            state.relayStates = result.relay_states
            state.triggerActive = result.trigger_active

        self.rearm()
        if publish:
            self.publish()
        return publish

    def publish(self) -> None:
        self.store.schedule_save(self.state.to_config())
        self.hub.broadcast(self.state.to_payload().model_dump())

    def rearm(self) -> None:
        if self.state.has_work:
            self.start()
        else:
            self.stop()

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Started relay state update loop.")

    def stop(self) -> None:
        """Release the tick task. Safe to call from inside the tick itself."""
        task, self._task = self._task, None
        if task is None:
            return
        if task is not asyncio.current_task():
            task.cancel()
        logger.info("Stopped relay state update loop.")

    async def _run(self) -> None:
        me = asyncio.current_task()
        interval = self.interval_ms / 1000
        while self._task is me:
            await asyncio.sleep(interval)
            if self._task is not me:
                break
            try:
                self.evaluate_now()
            except Exception as e:
                logger.exception(f"Error evaluating relay states: {e}")
