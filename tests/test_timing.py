"""
Unit tests for the relay timing engine.
"""

import pytest

from relay_alarm.core.config.models import ActiveTrigger, TestOverride as Override
from relay_alarm.services.timing import evaluate, window_state
from tests.conftest import RELAY_IDS, relay


def trigger(started_at=0, **relays):
    config = {relay_id: relay(enabled=False) for relay_id in RELAY_IDS}
    config.update({relay_id.lstrip("r"): cfg for relay_id, cfg in relays.items()})
    return ActiveTrigger(source="order", startedAt=started_at, relayConfig=config)


def override(relay_id="3", started_at=0, pulse=0):
    return Override(relayId=relay_id, startedAt=started_at, durationMs=500, pulseMs=pulse)


class TestWindowState:

    @pytest.mark.parametrize("elapsed,expected", [
        (999, False),
        (1000, True),
        (2999, True),
        (3000, False),
    ])
    def test_solid_window_bounds(self, elapsed, expected):
        assert window_state(elapsed, 1000, 2000, 0) is expected

    @pytest.mark.parametrize("elapsed,expected", [
        (1000, True),
        (1199, True),
        (1200, False),
        (1399, False),
        (1400, True),
    ])
    def test_pulse_half_period(self, elapsed, expected):
        assert window_state(elapsed, 1000, 2000, 200) is expected

    def test_pulse_stops_at_window_end(self):
        # 3000 would be an "on" phase but the window is closed
        assert window_state(3000, 1000, 2000, 500) is False


class TestMainTrigger:

    def test_disabled_relay_never_on(self):
        active = trigger(r1=relay(on_time=5000, enabled=False), r2=relay(on_time=5000))
        for now in (0, 100, 2500, 4999):
            result = evaluate(now, True, active, None, RELAY_IDS)
            assert result.relay_states["1"] is False
            assert result.relay_states["2"] is True

    def test_scenario_a_solid_relay(self):
        active = trigger(r1=relay(on_time=5000))

        assert evaluate(100, True, active, None, RELAY_IDS).relay_states["1"] is True
        at_4999 = evaluate(4999, True, active, None, RELAY_IDS)
        assert at_4999.relay_states["1"] is True
        assert at_4999.trigger_finished is False

        at_5000 = evaluate(5000, True, active, None, RELAY_IDS)
        assert at_5000.relay_states["1"] is False
        assert at_5000.trigger_finished is True
        assert at_5000.trigger_active is False

    @pytest.mark.parametrize("now,expected", [(1050, True), (1250, False), (1450, True)])
    def test_scenario_b_pulsed_relay(self, now, expected):
        active = trigger(r2=relay(on_time=2000, delay=1000, pulse=200))
        result = evaluate(now, True, active, None, RELAY_IDS)
        assert result.relay_states["2"] is expected
        assert result.trigger_active is True

    def test_trigger_active_before_first_window_opens(self):
        active = trigger(r1=relay(on_time=1000, delay=2000))
        result = evaluate(500, True, active, None, RELAY_IDS)
        assert result.relay_states == {"1": False, "2": False, "3": False, "4": False}
        assert result.trigger_active is True
        assert result.trigger_finished is False

    def test_finishes_when_last_enabled_relay_ends(self):
        active = trigger(r1=relay(on_time=1000), r3=relay(on_time=1000, delay=2000))
        assert evaluate(2999, True, active, None, RELAY_IDS).trigger_finished is False
        assert evaluate(3000, True, active, None, RELAY_IDS).trigger_finished is True

    def test_disabled_relays_do_not_extend_lifetime(self):
        active = trigger(
            r1=relay(on_time=1000),
            r4=relay(on_time=600000, delay=600000, enabled=False),
        )
        assert evaluate(1000, True, active, None, RELAY_IDS).trigger_finished is True

    def test_started_at_offset(self):
        active = trigger(started_at=10_000, r1=relay(on_time=1000, delay=500))
        assert evaluate(10_499, True, active, None, RELAY_IDS).relay_states["1"] is False
        assert evaluate(10_500, True, active, None, RELAY_IDS).relay_states["1"] is True
        assert evaluate(11_500, True, active, None, RELAY_IDS).trigger_finished is True

    def test_alarm_disabled_finishes_trigger(self):
        active = trigger(r1=relay(on_time=5000))
        result = evaluate(100, False, active, None, RELAY_IDS)
        assert result.relay_states["1"] is False
        assert result.trigger_finished is True
        assert result.trigger_active is False

    def test_no_trigger_all_off(self):
        result = evaluate(100, True, None, None, RELAY_IDS)
        assert result.relay_states == {"1": False, "2": False, "3": False, "4": False}
        assert result.trigger_active is False
        assert result.trigger_finished is False
        assert result.override_finished is False


class TestOverrideLayer:

    def test_override_alone_forces_trigger_active(self):
        result = evaluate(100, True, None, override("3"), RELAY_IDS)
        assert result.relay_states["3"] is True
        assert result.trigger_active is True
        assert result.override_finished is False

    def test_override_finishes_at_duration(self):
        assert evaluate(499, True, None, override("3"), RELAY_IDS).relay_states["3"] is True
        result = evaluate(500, True, None, override("3"), RELAY_IDS)
        assert result.relay_states["3"] is False
        assert result.override_finished is True
        assert result.trigger_active is False

    def test_override_pulses(self):
        test = override("1", pulse=100)
        assert evaluate(50, True, None, test, RELAY_IDS).relay_states["1"] is True
        assert evaluate(150, True, None, test, RELAY_IDS).relay_states["1"] is False
        assert evaluate(250, True, None, test, RELAY_IDS).relay_states["1"] is True

    def test_scenario_c_override_wins_over_off_window(self):
        active = trigger(r1=relay(on_time=5000), r3=relay(on_time=5000, delay=2000))
        test = override("3", started_at=100)

        result = evaluate(100, True, active, test, RELAY_IDS)
        assert result.relay_states["3"] is True
        assert result.relay_states["1"] is True

        assert evaluate(599, True, active, test, RELAY_IDS).relay_states["3"] is True
        after = evaluate(600, True, active, test, RELAY_IDS)
        assert after.relay_states["3"] is False
        assert after.override_finished is True
        assert after.trigger_active is True

    def test_finished_override_keeps_main_state(self):
        active = trigger(r3=relay(on_time=5000))
        result = evaluate(600, True, active, override("3", started_at=0), RELAY_IDS)
        assert result.override_finished is True
        assert result.relay_states["3"] is True

    def test_override_survives_trigger_completion(self):
        active = trigger(r1=relay(on_time=1000))
        result = evaluate(1000, True, active, override("2", started_at=900), RELAY_IDS)
        assert result.trigger_finished is True
        assert result.relay_states["1"] is False
        assert result.relay_states["2"] is True
        assert result.trigger_active is True

    def test_override_only_touches_its_relay(self):
        active = trigger(r1=relay(on_time=5000, delay=1000))
        result = evaluate(100, True, active, override("2"), RELAY_IDS)
        assert result.relay_states == {"1": False, "2": True, "3": False, "4": False}
