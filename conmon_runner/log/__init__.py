"""
Console logging for the runner.

Extends the standard logging module with:
- A TRACE level below DEBUG for handshake and pipe wiring detail
- Colored console output with ANSI escape sequences
- Structured fields rendered from ``extra``
- Complete disable via level=False or level="false"
"""

from __future__ import annotations

import logging
from typing import IO

from .colors import ColorManager
from .config import LogConfig, resolve_level
from .constants import LogConstants
from .factory import LoggerFactory
from .formatters import LogFormatter
from .logger import Logger

logging.addLevelName(LogConstants.TRACE, "TRACE")


def create_root_lg(
    level: str | int | bool = "info",
    micros: bool = False,
    colors: bool = True,
    stream: IO[str] | None = None,
) -> Logger:
    """Create the root ("/") logger from individual parameters."""
    config = LogConfig.from_params(level, micros=micros, colors=colors)
    return LoggerFactory.create_root(config, stream=stream)


__all__ = [
    "ColorManager",
    "LogConfig",
    "LogConstants",
    "LogFormatter",
    "Logger",
    "LoggerFactory",
    "create_root_lg",
    "resolve_level",
]
