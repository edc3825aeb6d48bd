"""Constants for the logging package."""

import logging


class LogConstants:
    """Constants for the logging package."""

    # Header rendered for every record; fields are appended after it
    DEFAULT_FORMAT: str = "[%(asctime)s] [%(levelname).1s] %(message)s"

    # Column where structured fields start, so they line up across records
    DEFAULT_RULE_WIDTH: int = 70
    MICRO_RULE_WIDTH: int = 74

    # Handshake and pipe wiring chatter is logged below DEBUG
    TRACE: int = 5

    LEVEL_NAMES: dict[str, int | bool] = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
        "trace": TRACE,
        "false": False,  # Special value to disable all logging
    }

    RESET: str = "\x1b[0m"

    # 256-color grayscale ramp
    GRAY_BASE: int = 232
    GRAY_MAX_LEVELS: int = 24
