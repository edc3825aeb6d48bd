"""
Log record formatting.

Records render as a header, structured fields and process metadata:

    [2026-01-05 10:12:01,337] [D] monitor started     [pid:4242] [1234] [/ctr]

Fields come from the record's ``extra``. Records from plain stdlib loggers
(the module-level loggers) have their non-standard attributes rendered the
same way.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .colors import ColorManager
from .config import LogConfig
from .constants import LogConstants
from .logger import EXTRA_ATTR

_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

# Attributes every LogRecord has; anything else was passed through extra
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", EXTRA_ATTR}


def _visual_len(text: str) -> int:
    """Calculate visual width of text, excluding ANSI escape codes."""
    if "\x1b" not in text:
        return len(text)
    return len(_ANSI_PATTERN.sub("", text))


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Structured fields attached to a record."""
    extra = getattr(record, EXTRA_ATTR, None)
    if extra is not None:
        return dict(extra)
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


def _render_value(key: str, value: Any) -> str:
    if key == "exception" and isinstance(value, BaseException):
        return value.__class__.__name__
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


class LogFormatter(logging.Formatter):
    """Formatter producing the runner's console log lines."""

    def __init__(self, config: LogConfig | None = None) -> None:
        super().__init__(LogConstants.DEFAULT_FORMAT)
        self._config = config or LogConfig()

    @property
    def config(self) -> LogConfig:
        return self._config

    def formatTime(  # noqa: N802
        self, record: logging.LogRecord, datefmt: str | None = None
    ) -> str:
        s = super().formatTime(record, datefmt)
        if self._config.micros:
            micros = int((record.created % 1) * 1000000) % 1000
            s += f".{micros:03d}"
        return s

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        record.asctime = self.formatTime(record, self.datefmt)

        if self._config.colors:
            line = self._format_colored(record)
        else:
            line = self._format_plain(record)

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            line += "\n" + record.exc_text
        if record.stack_info:
            line += "\n" + self.formatStack(record.stack_info)
        return line

    def _padding(self, head: str) -> str:
        rule = (
            LogConstants.MICRO_RULE_WIDTH
            if self._config.micros
            else LogConstants.DEFAULT_RULE_WIDTH
        )
        return " " * max(1, rule - _visual_len(head))

    def _format_plain(self, record: logging.LogRecord) -> str:
        head = self.formatMessage(record)
        fields = record_fields(record)
        parts = [f"[{k}:{_render_value(k, fields[k])}]" for k in sorted(fields)]
        parts.append(f"[{record.process}]")
        parts.append(f"[{record.name}]")
        return head + self._padding(head) + " ".join(parts)

    def _format_colored(self, record: logging.LogRecord) -> str:
        base = ColorManager.for_level(record.levelno)
        col = ColorManager.plain(base)
        bold = ColorManager.bold(base)
        reset = ColorManager.RESET

        head = (
            f"{col}[{record.asctime}] [{bold}{record.levelname[:1]}{reset}{col}] "
            f"{bold}{record.message}{reset}"
        )

        fields = record_fields(record)
        parts = [
            f"{col}{k}[{bold}{_render_value(k, fields[k])}{reset}{col}]{reset}"
            for k in sorted(fields)
        ]

        gray = ColorManager.gray(9)
        meta_col = ColorManager.plain(gray)
        meta_bold = ColorManager.bold(gray)
        for value in (record.process, record.name):
            parts.append(f"{meta_col}[{meta_bold}{value}{reset}{meta_col}]{reset}")

        return head + self._padding(head) + " ".join(parts)
