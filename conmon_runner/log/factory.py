"""
Factory for creating and configuring loggers.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

from .config import LogConfig
from .formatters import LogFormatter
from .logger import Logger


def _register(lg: logging.Logger) -> None:
    # Registered loggers get their level cache cleared by the logging manager
    logging.Logger.manager.loggerDict[lg.name] = lg


class LoggerFactory:
    """Factory for creating and configuring loggers."""

    @staticmethod
    def create_root(
        config: LogConfig,
        logger_class: type[Logger] = Logger,
        stream: IO[str] | None = None,
    ) -> Logger:
        """
        Create a root logger with the specified configuration.

        Example:
            >>> config = LogConfig.from_params(level="info", colors=False)
            >>> lg = LoggerFactory.create_root(config)
            >>> lg.info("runner started")
            [2026-01-05 12:34:56,789] [I] runner started     [1234] [/]
        """
        return LoggerFactory.create("/", config, logger_class, stream=stream)

    @staticmethod
    def create(
        name: str,
        config: LogConfig,
        logger_class: type[Logger] = Logger,
        extra: dict[str, Any] | None = None,
        stream: IO[str] | None = None,
    ) -> Logger:
        """
        Create a logger writing to a console stream.

        A logger with the same name is replaced, not reused.

        Args:
            name: Logger name
            config: Logger configuration
            logger_class: Logger class to use
            extra: Fields included in all log records
            stream: Output stream (defaults to stdout)
        """
        lg = logger_class(name, config, extra=extra)
        handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
        handler.setLevel(config.effective_level)
        handler.setFormatter(LogFormatter(config))
        lg.addHandler(handler)
        lg.propagate = False
        _register(lg)
        return lg

    @staticmethod
    def derive(
        parent: Logger,
        tags: str | list[str],
        extra: dict[str, Any] | None = None,
    ) -> Logger:
        """
        Derive a logger that writes through its parent's handlers.

        The derived logger follows the parent's level and adds its own
        fields on top of the parent's.

        Examples:
            >>> root = LoggerFactory.create_root(config)
            >>> LoggerFactory.derive(root, "monitor").name
            '/monitor'
            >>> LoggerFactory.derive(root, ["monitor", "ctr"]).name
            '/monitor/ctr'
        """
        if isinstance(tags, str):
            tags = [tags]
        base = parent.name.rstrip("/")
        name = base + "/" + "/".join(tags)

        fields = {**parent.extra, **(extra or {})}
        lg = parent.__class__(name, parent.config, extra=fields)
        lg.setLevel(logging.NOTSET)
        lg.parent = parent
        lg.propagate = True
        _register(lg)
        return lg
