from relay_alarm.core.config.models import (
    ActiveTrigger,
    RelayConfig,
    SystemConfig,
    TestOverride,
    default_config,
    migrate_document,
    validate_relay_configs,
)
from relay_alarm.core.config.store import SettingsStore

__all__ = [
    "ActiveTrigger",
    "RelayConfig",
    "SettingsStore",
    "SystemConfig",
    "TestOverride",
    "default_config",
    "migrate_document",
    "validate_relay_configs",
]
