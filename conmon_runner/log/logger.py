"""
Logger class with a TRACE level and bound extra fields.
"""

from __future__ import annotations

import logging
from typing import Any

from .config import LogConfig
from .constants import LogConstants

# Record attribute holding the structured fields for the formatter
EXTRA_ATTR = "__runner__extra"


class Logger(logging.Logger):
    """
    Logger that carries its configuration and a set of bound fields.

    Bound fields are merged under per-call ``extra`` on every record, so a
    logger derived for one container tags everything it logs:

        lg = LoggerFactory.derive(root, "ctr", extra={"cid": ctr_id})
        lg.info("monitor started", extra={"pid": pid})
    """

    def __init__(
        self,
        name: str,
        config: LogConfig | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        config = config or LogConfig()
        super().__init__(name, config.effective_level)
        self._config = config
        self._extra: dict[str, Any] = dict(extra or {})

    @property
    def config(self) -> LogConfig:
        return self._config

    @property
    def extra(self) -> dict[str, Any]:
        return dict(self._extra)

    def trace(self, msg: object, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(LogConstants.TRACE):
            self._log(LogConstants.TRACE, msg, args, **kwargs)

    def makeRecord(  # noqa: N802
        self,
        name: str,
        level: int,
        fn: str,
        lno: int,
        msg: object,
        args: Any,
        exc_info: Any,
        func: str | None = None,
        extra: dict[str, Any] | None = None,
        sinfo: str | None = None,
    ) -> logging.LogRecord:
        merged = {**self._extra, **(extra or {})}
        record = super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func, merged or None, sinfo
        )
        setattr(record, EXTRA_ATTR, merged)
        return record
