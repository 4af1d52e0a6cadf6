"""
Relay timing engine.

Turns a trigger start time and per-relay timing into on/off states for one
instant. Pure: no I/O, no clock reads, no state beyond the arguments. Inputs
are validated before they get here, so every call has an answer.
"""
from typing import Dict, Iterable, NamedTuple, Optional

from relay_alarm.core.config.models import ActiveTrigger, RelayConfig, TestOverride


class Evaluation(NamedTuple):
    relay_states: Dict[str, bool]
    trigger_active: bool
    trigger_finished: bool
    override_finished: bool


def window_state(elapsed: int, start: int, duration: int, pulse: int) -> bool:
    """
    State inside `[start, start + duration)`: solid on when `pulse` is 0,
    otherwise a 50% square wave with period `2 * pulse` starting on.
    """
    if elapsed < start or elapsed >= start + duration:
        return False
    if pulse <= 0:
        return True
    return (elapsed - start) % (2 * pulse) < pulse


def relay_finished(now: int, started_at: int, config: Optional[RelayConfig]) -> bool:
    if config is None or not config.enabled:
        return True
    return now >= started_at + config.delayMs + config.onTimeMs


def evaluate(
    now: int,
    alarm_enabled: bool,
    active_trigger: Optional[ActiveTrigger],
    test_override: Optional[TestOverride],
    relay_ids: Iterable[str],
) -> Evaluation:
    """
    Compute every relay's state at `now`.

    The main trigger is evaluated first; a test override is then laid over
    its single relay. `trigger_finished` / `override_finished` tell the caller
    which of the two should be cleared.
    """
    relay_states = {relay_id: False for relay_id in relay_ids}
    trigger_active = False
    trigger_finished = False
    override_finished = False

    if active_trigger is not None:
        snapshot = active_trigger.relayConfig
        started_at = active_trigger.startedAt
        elapsed = now - started_at

        if alarm_enabled:
            for relay_id in relay_states:
                config = snapshot.get(relay_id)
                if config is None or not config.enabled:
                    continue
                relay_states[relay_id] = window_state(elapsed, config.delayMs, config.onTimeMs, config.pulseMs)

        # With the alarm disabled every relay counts as finished
        trigger_finished = not alarm_enabled or all(
            relay_finished(now, started_at, snapshot.get(relay_id)) for relay_id in relay_states
        )
        if trigger_finished:
            relay_states = {relay_id: False for relay_id in relay_states}
        else:
            trigger_active = True

    if test_override is not None:
        relay_id = test_override.relayId
        elapsed = now - test_override.startedAt
        if elapsed >= test_override.durationMs or relay_id not in relay_states:
            # The main computation already decided this relay's state
            override_finished = True
        else:
            relay_states[relay_id] = window_state(elapsed, 0, test_override.durationMs, test_override.pulseMs)
            trigger_active = True

    return Evaluation(relay_states, trigger_active, trigger_finished, override_finished)
