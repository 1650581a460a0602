"""Simulation limits and logging settings, loaded from YAML."""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import yaml  # pip install pyyaml


DEFAULT_MAX_TASKS = 10
DEFAULT_MAX_JOBS = 1000
DEFAULT_HYPERPERIOD_LIMIT = 2**31 - 1
DEFAULT_HYPERPERIOD_WARNING = 1_000_000

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class SimulationConfig:
    """Static capacities and logging level for one simulator run.

    Attributes:
        max_tasks: Maximum number of tasks accepted from the task file.
        max_jobs: Maximum number of job instances generated per hyperperiod.
        hyperperiod_limit: Largest hyperperiod accepted; anything above is
            treated as an LCM overflow.
        hyperperiod_warning: Hyperperiods above this are accepted with a warning.
        log_level: Name of the root logging level used by the CLI.
    """
    max_tasks: int = DEFAULT_MAX_TASKS
    max_jobs: int = DEFAULT_MAX_JOBS
    hyperperiod_limit: int = DEFAULT_HYPERPERIOD_LIMIT
    hyperperiod_warning: int = DEFAULT_HYPERPERIOD_WARNING
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate limits and the log level name."""
        for name in ("max_tasks", "max_jobs", "hyperperiod_limit", "hyperperiod_warning"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        level = str(self.log_level).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {self.log_level!r}")
        object.__setattr__(self, 'log_level', level)

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)


_LIMIT_KEYS = {"max_tasks", "max_jobs", "hyperperiod_limit", "hyperperiod_warning"}


def config_from_dict(data: Optional[Dict[str, Any]]) -> SimulationConfig:
    """Build a SimulationConfig from the parsed YAML mapping.

    Expected layout:

        limits:
          max_tasks: 10
          max_jobs: 1000
        logging:
          level: INFO

    Raises:
        ValueError: On unknown sections or keys, or invalid values.
    """
    if not data:
        return SimulationConfig()
    if not isinstance(data, dict):
        raise ValueError("Configuration must be a mapping")

    unknown = set(data) - {"limits", "logging"}
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

    kwargs: Dict[str, Any] = {}
    limits = data.get("limits") or {}
    if not isinstance(limits, dict):
        raise ValueError("'limits' must be a mapping")
    bad_keys = set(limits) - _LIMIT_KEYS
    if bad_keys:
        raise ValueError(f"Unknown limits: {sorted(bad_keys)}")
    kwargs.update(limits)

    log_section = data.get("logging") or {}
    if not isinstance(log_section, dict):
        raise ValueError("'logging' must be a mapping")
    bad_keys = set(log_section) - {"level"}
    if bad_keys:
        raise ValueError(f"Unknown logging options: {sorted(bad_keys)}")
    if "level" in log_section:
        kwargs["log_level"] = log_section["level"]

    return SimulationConfig(**kwargs)


def load_config(path: Optional[str] = None) -> SimulationConfig:
    """Load YAML configuration, or return defaults when path is None."""
    if path is None:
        return SimulationConfig()
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
    return config_from_dict(data)

