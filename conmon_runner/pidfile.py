"""PID file reading."""

from __future__ import annotations

import os


def read_pid_file(path: str | os.PathLike[str]) -> int:
    """
    Read a process ID written by the monitor.

    A single attempt is made; the monitor may not have written the file yet,
    in which case callers retry on their own schedule.

    Args:
        path: PID file path

    Returns:
        The process ID

    Raises:
        OSError: If the file cannot be read
        ValueError: If the contents are not a base-10 integer
    """
    with open(path) as f:
        content = f.read()
    return int(content.strip(), 10)
