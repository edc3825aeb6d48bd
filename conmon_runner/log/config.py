"""
Configuration for runner loggers.

Loggers are configured once from an immutable LogConfig, built either from
individual parameters or from the ``logging`` section of the runner config.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..exceptions import InvalidLogLevelError
from .constants import LogConstants


def resolve_level(level: str | int | bool) -> int | bool:
    """
    Resolve a level name, number or switch to a logging level.

    Args:
        level: Level name ("debug", "trace", ...), numeric level or numeric
            string, True for INFO, or False/"false" to disable logging

    Returns:
        Numeric level, or False when logging is disabled

    Raises:
        InvalidLogLevelError: If the name is not a known level
    """
    if isinstance(level, bool):
        return logging.INFO if level else False
    if isinstance(level, str):
        if level.isnumeric():
            return int(level)
        name = level.lower()
        if name in LogConstants.LEVEL_NAMES:
            return LogConstants.LEVEL_NAMES[name]
        raise InvalidLogLevelError(level)
    if isinstance(level, int):
        return level
    raise InvalidLogLevelError(level)


@dataclass(frozen=True)
class LogConfig:
    """Immutable logger configuration."""

    level: int | bool = logging.INFO  # int for normal levels, False to disable logging
    micros: bool = False
    colors: bool = True

    @property
    def disabled(self) -> bool:
        return self.level is False

    @property
    def effective_level(self) -> int:
        """Numeric level to hand to the logging module."""
        if self.level is False:
            return logging.CRITICAL + 1
        return int(self.level)

    @classmethod
    def from_params(
        cls,
        level: str | int | bool,
        micros: bool = False,
        colors: bool = True,
    ) -> LogConfig:
        """
        Create LogConfig from individual parameters.

        Args:
            level: Log level (string name, numeric value, or False to disable logging)
            micros: Whether to show microsecond precision
            colors: Whether to enable colored output
        """
        return cls(level=resolve_level(level), micros=micros, colors=colors)

    @classmethod
    def from_config(cls, config_dict: Any, section: str = "logging") -> LogConfig:
        """
        Create LogConfig from a configuration mapping.

        Missing sections and keys fall back to the defaults.

        Example:
            config = {"logging": {"level": "debug", "colors": False}}
            log_config = LogConfig.from_config(config)
        """
        current: Any = config_dict
        for part in section.split("."):
            if hasattr(current, "get") and part in current:
                current = current[part]
            else:
                current = {}
                break
        if not hasattr(current, "get"):
            current = {}

        return cls.from_params(
            level=current.get("level", "info"),
            micros=bool(current.get("micros", False)),
            colors=bool(current.get("colors", True)),
        )
