"""
Central configuration for the safety monitors.

Tunables live in a ``MonitorSettings`` dataclass.  ``load_monitor_settings()``
deep-merges an optional JSON file over the defaults, applies explicit
overrides and validates the result.  The file path defaults to the
``AXISWATCH_CONFIG`` environment variable (a ``.env`` file is honoured).

Example file::

    {
        "singularity": {"wrist_threshold_deg": 3.0},
        "dynamics": {"update_stride": 1, "window_size": 10}
    }
"""

from __future__ import annotations

import copy
import json
import logging
import math
import numbers
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "AXISWATCH_CONFIG"


class ConfigError(ValueError):
    """Raised when monitor configuration is invalid."""
    pass


# ── Defaults ──────────────────────────────────────────────────────────────

DEFAULTS: dict[str, dict[str, Any]] = {
    "singularity": {
        "wrist_threshold_deg": 5.0,
        "shoulder_threshold_len": 0.1,
        "elbow_threshold_deg": 5.0,
        "check_wrist": True,
        "check_shoulder": True,
        "check_elbow": True,
    },
    "dynamics": {
        "smoothing_enabled": True,
        "smoothing_alpha": 0.2,
        "window_size": 8,
        "velocity_outlier_fraction": 0.2,
        "accel_outlier_fraction": 0.15,
        "update_stride": 2,
        "history_buffer_size": 15,
        "safety_derating_factor": 0.8,
        "use_kinematic_limits": True,
    },
    "events": {
        "event_queue_size": 256,
        "ingest_queue_size": 1024,
        "min_log_level": "warning",
    },
}

_LOG_LEVEL_NAMES = ("info", "resolved", "warning", "critical", "emergency")

_INT_FIELDS = (
    "window_size",
    "update_stride",
    "history_buffer_size",
    "event_queue_size",
    "ingest_queue_size",
)
_FLOAT_FIELDS = (
    "wrist_threshold_deg",
    "shoulder_threshold_len",
    "elbow_threshold_deg",
    "smoothing_alpha",
    "velocity_outlier_fraction",
    "accel_outlier_fraction",
    "safety_derating_factor",
)
_BOOL_FIELDS = (
    "check_wrist",
    "check_shoulder",
    "check_elbow",
    "smoothing_enabled",
    "use_kinematic_limits",
)


def _type_errors(settings: MonitorSettings) -> list[str]:
    """Type problems that would make the range checks meaningless."""
    errors = []
    for name in _INT_FIELDS:
        value = getattr(settings, name)
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{name} must be an integer, got {value!r}")
    for name in _FLOAT_FIELDS:
        value = getattr(settings, name)
        if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
            errors.append(f"{name} must be a finite number, got {value!r}")
    for name in _BOOL_FIELDS:
        value = getattr(settings, name)
        if not isinstance(value, bool):
            errors.append(f"{name} must be true or false, got {value!r}")
    if not isinstance(settings.min_log_level, str):
        errors.append(f"min_log_level must be a string, got {settings.min_log_level!r}")
    return errors


@dataclass(frozen=True)
class MonitorSettings:
    """Validated tunables for the singularity and joint dynamics monitors."""

    # Singularity detection
    wrist_threshold_deg: float = 5.0
    shoulder_threshold_len: float = 0.1
    elbow_threshold_deg: float = 5.0
    check_wrist: bool = True
    check_shoulder: bool = True
    check_elbow: bool = True

    # Joint dynamics
    smoothing_enabled: bool = True
    smoothing_alpha: float = 0.2
    window_size: int = 8
    velocity_outlier_fraction: float = 0.2
    accel_outlier_fraction: float = 0.15
    update_stride: int = 2
    history_buffer_size: int = 15
    safety_derating_factor: float = 0.8
    use_kinematic_limits: bool = True

    # Event delivery
    event_queue_size: int = 256
    ingest_queue_size: int = 1024  # 0 = unbounded
    min_log_level: str = "warning"

    def __post_init__(self):
        type_errors = _type_errors(self)
        if type_errors:
            raise ConfigError("; ".join(type_errors))

        errors = []
        if self.wrist_threshold_deg <= 0 or self.wrist_threshold_deg >= 90:
            errors.append(f"wrist_threshold_deg must be in (0, 90), got {self.wrist_threshold_deg}")
        if self.elbow_threshold_deg <= 0 or self.elbow_threshold_deg >= 90:
            errors.append(f"elbow_threshold_deg must be in (0, 90), got {self.elbow_threshold_deg}")
        if self.shoulder_threshold_len <= 0:
            errors.append(
                f"shoulder_threshold_len must be positive, got {self.shoulder_threshold_len}"
            )
        if not 0.0 < self.smoothing_alpha <= 1.0:
            errors.append(f"smoothing_alpha must be in (0, 1], got {self.smoothing_alpha}")
        if not 3 <= self.window_size <= 20:
            errors.append(f"window_size must be in [3, 20], got {self.window_size}")
        if not 0.0 < self.velocity_outlier_fraction <= 1.0:
            errors.append(
                f"velocity_outlier_fraction must be in (0, 1], got {self.velocity_outlier_fraction}"
            )
        if not 0.0 < self.accel_outlier_fraction <= 1.0:
            errors.append(
                f"accel_outlier_fraction must be in (0, 1], got {self.accel_outlier_fraction}"
            )
        if self.update_stride < 1:
            errors.append(f"update_stride must be >= 1, got {self.update_stride}")
        if self.history_buffer_size < 3:
            errors.append(f"history_buffer_size must be >= 3, got {self.history_buffer_size}")
        if not 0.0 < self.safety_derating_factor <= 1.0:
            errors.append(
                f"safety_derating_factor must be in (0, 1], got {self.safety_derating_factor}"
            )
        if self.event_queue_size < 1:
            errors.append(f"event_queue_size must be >= 1, got {self.event_queue_size}")
        if self.ingest_queue_size < 0:
            errors.append(f"ingest_queue_size must be >= 0, got {self.ingest_queue_size}")
        if str(self.min_log_level).lower() not in _LOG_LEVEL_NAMES:
            errors.append(
                f"min_log_level must be one of {_LOG_LEVEL_NAMES}, got {self.min_log_level!r}"
            )
        if errors:
            raise ConfigError("; ".join(errors))

    @classmethod
    def from_sections(cls, data: dict[str, dict[str, Any]]) -> MonitorSettings:
        """Build settings from the sectioned dict layout used by the JSON file."""
        known = {f.name for f in fields(cls)}
        flat: dict[str, Any] = {}
        for section, values in data.items():
            if not isinstance(values, dict):
                logger.warning("Ignoring config section %r: expected an object", section)
                continue
            for key, value in values.items():
                if key in known:
                    flat[key] = value
                else:
                    logger.warning("Ignoring unknown config key %s.%s", section, key)
        return cls(**flat)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _merge(base: dict, overlay: dict) -> None:
    """Deep-merge overlay into base."""
    for k, v in overlay.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _merge(base[k], v)
        else:
            base[k] = v


def _resolve_path(path: Optional[str | Path]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    load_dotenv()
    env_path = os.getenv(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else None


def load_monitor_settings(
    path: Optional[str | Path] = None,
    overrides: Optional[dict[str, dict[str, Any]]] = None,
) -> MonitorSettings:
    """Load settings: defaults <- JSON file <- overrides, then validate.

    A missing or unreadable file is logged and ignored; invalid values raise
    ConfigError.
    """
    data = copy.deepcopy(DEFAULTS)

    config_path = _resolve_path(path)
    if config_path is not None:
        if config_path.exists():
            try:
                saved = json.loads(config_path.read_text())
                if isinstance(saved, dict):
                    _merge(data, saved)
                    logger.info("Loaded monitor config from %s", config_path)
                else:
                    logger.warning("Ignoring monitor config %s: top level is not an object", config_path)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to load monitor config %s: %s", config_path, e)
        else:
            logger.warning("Monitor config %s not found, using defaults", config_path)

    if overrides:
        _merge(data, overrides)

    return MonitorSettings.from_sections(data)
