from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing import Any, Dict, List, Literal, Optional

from relay_alarm.core.errors import InvalidRange, InvalidShape

CONFIG_VERSION = 2

# Named defaults used when a relay is missing from a stored document
DEFAULT_ON_TIME_MS = 5000
DEFAULT_DELAY_STEP_MS = 1000
DEFAULT_PULSE_MS = 0
DEFAULT_ENABLED = True

_RANGE_ERRORS = {"greater_than_equal", "less_than_equal"}


class RelayConfig(BaseModel):
    """
    Timing configuration for a single relay channel.
    """
    model_config = ConfigDict(frozen=True, strict=True, extra="ignore")

    onTimeMs: int = Field(..., ge=100, le=600000, description="How long the relay stays active, in ms")
    delayMs: int = Field(..., ge=0, le=600000, description="Delay between trigger and activation, in ms")
    pulseMs: int = Field(..., ge=0, le=5000, description="Pulse half-period in ms, 0 for solid on")
    enabled: bool = Field(..., description="Whether the relay takes part in triggers")


class ActiveTrigger(BaseModel):
    """
    A running activation episode. `relayConfig` is a private snapshot taken
    when the trigger fired and is never touched by later config edits.
    """
    model_config = ConfigDict(frozen=True)

    source: Literal["order", "test"]
    startedAt: int = Field(..., description="Epoch milliseconds when the trigger fired")
    relayConfig: Dict[str, RelayConfig]


class TestOverride(BaseModel):
    """
    A fixed-duration activation of one relay, layered over the main trigger.
    """

    model_config = ConfigDict(frozen=True)

    relayId: str
    startedAt: int
    durationMs: int = 500
    pulseMs: int = 0


class SystemConfig(BaseModel):
    """
    Persisted document: relay configuration plus any in-flight activation so
    that a restart resumes where it left off.
    """
    version: int = CONFIG_VERSION
    alarmEnabled: bool = True
    relays: Dict[str, RelayConfig]
    activeTrigger: Optional[ActiveTrigger] = None
    testOverride: Optional[TestOverride] = None


def default_relays(relay_ids: List[str]) -> Dict[str, RelayConfig]:
    """Factory defaults: solid 5 s activations staggered by one second."""
    return {
        relay_id: RelayConfig(
            onTimeMs=DEFAULT_ON_TIME_MS,
            delayMs=index * DEFAULT_DELAY_STEP_MS,
            pulseMs=DEFAULT_PULSE_MS,
            enabled=DEFAULT_ENABLED,
        )
        for index, relay_id in enumerate(relay_ids)
    }


def default_config(relay_ids: List[str]) -> SystemConfig:
    return SystemConfig(relays=default_relays(relay_ids))


def _fill_relay_defaults(relay: Dict[str, Any]) -> Dict[str, Any]:
    return {"pulseMs": DEFAULT_PULSE_MS, "enabled": DEFAULT_ENABLED, **relay}


def _migrate_v1(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Version 1 documents are unversioned dumps of the whole runtime state:
    relays may lack `pulseMs`/`enabled`, the trigger start is stored as
    `timestamp` and the test command lives under `testRelay`.
    """
    relays = {
        str(relay_id): _fill_relay_defaults(relay)
        for relay_id, relay in (data.get("relays") or {}).items()
        if isinstance(relay, dict)
    }

    active_trigger = None
    trigger = data.get("activeTrigger")
    if isinstance(trigger, dict) and trigger.get("timestamp") is not None:
        active_trigger = {
            "source": trigger.get("source", "order"),
            "startedAt": trigger["timestamp"],
            "relayConfig": {
                str(relay_id): _fill_relay_defaults(relay)
                for relay_id, relay in (trigger.get("relayConfig") or {}).items()
                if isinstance(relay, dict)
            },
        }

    test_override = None
    test_relay = data.get("testRelay")
    if isinstance(test_relay, dict) and test_relay.get("id") is not None and test_relay.get("onTimeMs"):
        test_override = {
            "relayId": str(test_relay["id"]),
            "startedAt": test_relay.get("timestamp") or 0,
            "durationMs": test_relay["onTimeMs"],
            "pulseMs": test_relay.get("pulseMs") or 0,
        }

    return {
        "alarmEnabled": data.get("alarmEnabled", True),
        "relays": relays,
        "activeTrigger": active_trigger,
        "testOverride": test_override,
    }


def migrate_document(raw: Dict[str, Any], relay_ids: List[str]) -> Dict[str, Any]:
    """
    Bring a stored document up to the current version and make its relay set
    total: unknown ids are dropped, missing ids get factory defaults.
    """
    data = dict(raw)
    if data.get("version", 1) < 2:
        data = _migrate_v1(data)

    stored = data.get("relays") or {}
    defaults = default_relays(relay_ids)
    data["relays"] = {
        relay_id: stored.get(relay_id, defaults[relay_id].model_dump())
        for relay_id in relay_ids
    }
    data["version"] = CONFIG_VERSION
    return data


def validate_relay_configs(relays: Any, relay_ids: List[str]) -> Dict[str, RelayConfig]:
    """
    Validate a full relay configuration set coming from a command.

    Raises:
        InvalidShape: the id set is not exactly `relay_ids` or a field is
            missing or of the wrong type
        InvalidRange: a timing value is out of bounds
    """
    if not isinstance(relays, dict):
        raise InvalidShape("Invalid relays configuration.")
    if set(relays.keys()) != set(relay_ids):
        raise InvalidShape(
            f"Invalid relays configuration: expected relay ids {sorted(relay_ids)}, got {sorted(map(str, relays.keys()))}."
        )

    validated: Dict[str, RelayConfig] = {}
    for relay_id in relay_ids:
        try:
            validated[relay_id] = RelayConfig.model_validate(relays[relay_id])
        except ValidationError as e:
            errors = e.errors()
            fields = ", ".join(str(err["loc"][0]) for err in errors if err.get("loc"))
            if all(err["type"] in _RANGE_ERRORS for err in errors):
                raise InvalidRange(f"Invalid {fields} for relay {relay_id}.") from e
            raise InvalidShape(f"Invalid {fields or 'configuration'} for relay {relay_id}.") from e
    return validated
