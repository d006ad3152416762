"""Monitor configuration."""

from axiswatch.config.monitor_config import (
    CONFIG_ENV_VAR,
    ConfigError,
    DEFAULTS,
    MonitorSettings,
    load_monitor_settings,
)

__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigError",
    "DEFAULTS",
    "MonitorSettings",
    "load_monitor_settings",
]
