"""Simulator configuration.

A run is described by a small immutable ``SimulatorConfig``.  It can be
built in code, read from a JSON file, and then overridden by
command-line flags::

    {
        "policy": "pcp",
        "quantum": 2,
        "num_resources": 8,
        "max_ticks": 500,
        "quiet": false,
        "log_level": "info"
    }

Unknown keys are rejected so a typo never silently falls back to a
default.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from py_sched.logging import LogLevel
from py_sched.sync.resources import DEFAULT_NUM_RESOURCES

if TYPE_CHECKING:
    from pathlib import Path


class ConfigError(ValueError):
    """Raise when a configuration file cannot be loaded or is invalid."""


def _require_type(name: str, value: object, expected: type) -> None:
    """Reject *value* unless it is an *expected* instance (a bool is not an int)."""
    if isinstance(value, bool) != (expected is bool) or not isinstance(value, expected):
        msg = f"{name} must be of type {expected.__name__}, got {type(value).__name__}"
        raise ConfigError(msg)


@dataclass(frozen=True)
class SimulatorConfig:
    """Settings for one simulation run."""

    policy: str = "fcfs"
    quantum: int = 1
    num_resources: int = DEFAULT_NUM_RESOURCES
    max_ticks: int | None = None
    quiet: bool = False
    log_level: str = "warning"

    def __post_init__(self) -> None:
        """Validate field values.

        Raises:
            ConfigError: If a value has the wrong type or is out of range.

        """
        _require_type("policy", self.policy, str)
        _require_type("quantum", self.quantum, int)
        _require_type("num_resources", self.num_resources, int)
        if self.max_ticks is not None:
            _require_type("max_ticks", self.max_ticks, int)
        _require_type("quiet", self.quiet, bool)
        _require_type("log_level", self.log_level, str)
        if self.quantum <= 0:
            msg = f"quantum must be positive, got {self.quantum}"
            raise ConfigError(msg)
        if self.num_resources <= 0:
            msg = f"num_resources must be positive, got {self.num_resources}"
            raise ConfigError(msg)
        if self.max_ticks is not None and self.max_ticks < 0:
            msg = f"max_ticks must not be negative, got {self.max_ticks}"
            raise ConfigError(msg)
        try:
            LogLevel.parse(self.log_level)
        except ValueError as e:
            raise ConfigError(str(e)) from e

    @property
    def level(self) -> LogLevel:
        """Return ``log_level`` as a ``LogLevel``."""
        return LogLevel.parse(self.log_level)

    def merge(self, **overrides: Any) -> SimulatorConfig:
        """Return a copy with every non-None override applied.

        Raises:
            ConfigError: If an override has the wrong type or value.

        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        try:
            return dataclasses.replace(self, **changes)
        except TypeError as e:
            raise ConfigError(str(e)) from e


def config_from_dict(data: dict[str, Any]) -> SimulatorConfig:
    """Build a config from a mapping (e.g. decoded JSON).

    Raises:
        ConfigError: On unknown keys or invalid values.

    """
    known = {f.name for f in dataclasses.fields(SimulatorConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        msg = f"Unknown configuration keys: {', '.join(unknown)}"
        raise ConfigError(msg)
    try:
        return SimulatorConfig(**data)
    except TypeError as e:
        raise ConfigError(str(e)) from e


def load_config(path: Path) -> SimulatorConfig:
    """Load a JSON configuration file.

    Raises:
        ConfigError: If the file cannot be read, decoded, or validated.

    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot load config {path}: {e}"
        raise ConfigError(msg) from e
    if not isinstance(data, dict):
        msg = f"Config {path} must contain a JSON object"
        raise ConfigError(msg)
    return config_from_dict(data)
