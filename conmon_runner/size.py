"""
Byte size parsing for log size limits.

The monitor takes log limits as plain byte counts. Callers may pass either an
integer or a human-readable string, which is converted here:

    >>> parse_size("10MB")
    10485760
    >>> parse_size("512")
    512
    >>> parse_size(-1)
    -1
"""

import re

# Binary (1024-based) multipliers, the usual convention for log limits
_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
    "KIB": 1024,
    "MIB": 1024**2,
    "GIB": 1024**3,
    "TIB": 1024**4,
}

_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMGT]I?B|B)?$", re.IGNORECASE)

# Largest value the monitor accepts (signed 64-bit)
MAX_SIZE = 2**63 - 1


class InvalidSizeError(ValueError):
    """Raised when a size value or string cannot be used as a byte count."""

    pass


def parse_size(size: int | str) -> int:
    """
    Convert a size to a byte count.

    Integers are taken as bytes; negative integers are passed through since
    the monitor treats them as "no limit". Strings are a number with an
    optional unit (B, KB, MB, GB, TB or their KiB forms).

    Raises:
        InvalidSizeError: If the value cannot be parsed or is out of range
    """
    if isinstance(size, bool):
        raise InvalidSizeError(f"Size must be an integer or string, got {size!r}")

    if isinstance(size, int):
        value = size
    elif isinstance(size, str):
        value = _parse_size_str(size)
    else:
        raise InvalidSizeError(
            f"Size must be an integer or string, got {type(size).__name__}"
        )

    if value > MAX_SIZE:
        raise InvalidSizeError(f"Size {value} exceeds maximum of {MAX_SIZE} bytes")
    return value


def _parse_size_str(text: str) -> int:
    stripped = text.strip()
    match = _SIZE_PATTERN.match(stripped)
    if not match:
        raise InvalidSizeError(f"Could not parse size string: '{text}'")

    number, unit = match.group(1), (match.group(2) or "B").upper()
    if "." in number:
        return int(float(number) * _UNITS[unit])
    return int(number) * _UNITS[unit]
