"""
Runner configuration.

Settings are read from an optional YAML file layered over built-in defaults,
then overridden from the environment:

    CONMON_RUNNER_<SECTION>_<KEY>=value   e.g. CONMON_RUNNER_HANDSHAKE_TIMEOUT=5
    CONMON_BINARY=/opt/bin/conmon         overrides monitor.path
    RUNTIME_BINARY=/opt/bin/crun          overrides monitor.runtime

Example:
    config = RunnerConfig("/etc/conmon-runner.yaml")
    lg = config.create_logger()
    ci = MonitorInstance.create(*config.options(), with_sync_pipe(), lg=lg)
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

from .dot_dict import DotDict
from .exceptions import ConfigurationError
from .handshake import HANDSHAKE_TIMEOUT
from .log import LogConfig, Logger, LoggerFactory
from .options import (
    ConfigStep,
    with_full_output,
    with_handshake_timeout,
    with_log_level,
    with_path,
    with_runtime_path,
    with_socket_path,
)

DEFAULT_ENV_PREFIX = "CONMON_RUNNER_"

DEFAULTS: dict[str, Any] = {
    "monitor": {
        "path": "/usr/bin/conmon",
        "runtime": "/usr/bin/runc",
        "log_level": "info",
        "socket_dir": "/var/run/crio",
    },
    "handshake": {
        "timeout": HANDSHAKE_TIMEOUT,
        "full_output": True,
    },
    "logging": {
        "level": "info",
        "micros": False,
        "colors": True,
    },
}

# Variables that name binaries directly, outside the prefixed scheme
BINARY_ENV_VARS = {
    "CONMON_BINARY": ("monitor", "path"),
    "RUNTIME_BINARY": ("monitor", "runtime"),
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into ``base`` section by section."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def convert_env_value(value: str) -> bool | int | float | str | list[Any] | None:
    """
    Convert an environment variable string to a typed value.

    Examples:
        "true" -> True, "5" -> 5, "0.5" -> 0.5, "a,b" -> ["a", "b"],
        "null" -> None, anything else stays a string
    """
    if value.lower() in ("null", "none", ""):
        return None

    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    if "," in value:
        return [convert_env_value(v.strip()) for v in value.split(",")]

    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        pass

    return value


class RunnerConfig(DotDict):
    """
    Runner settings with ``monitor``, ``handshake`` and ``logging`` sections.

    Args:
        fname: YAML file to load; None uses the defaults only
        enable_env_overrides: Whether to apply environment variable overrides
        env_prefix: Prefix for section/key override variables
    """

    def __init__(
        self,
        fname: str | Path | None = None,
        enable_env_overrides: bool = True,
        env_prefix: str = DEFAULT_ENV_PREFIX,
    ) -> None:
        super().__init__()
        data = copy.deepcopy(DEFAULTS)
        if fname is not None:
            _merge(data, self._load_file(Path(fname)))
        if enable_env_overrides:
            self._apply_env_overrides(data, env_prefix)
        self.set(**data)

    @classmethod
    def defaults(cls) -> RunnerConfig:
        """Built-in defaults, without environment overrides."""
        return cls(None, enable_env_overrides=False)

    @staticmethod
    def _load_file(path: Path) -> dict[str, Any]:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ConfigurationError(
                "configuration file must contain a mapping", path=str(path)
            )
        return content

    @staticmethod
    def _apply_env_overrides(data: dict[str, Any], env_prefix: str) -> None:
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(env_prefix):
                continue
            # CONMON_RUNNER_MONITOR_LOG_LEVEL -> monitor.log_level
            section, _, key = env_key[len(env_prefix) :].lower().partition("_")
            if not section or not key:
                continue
            target = data.setdefault(section, {})
            if isinstance(target, dict):
                target[key] = convert_env_value(env_value)

        for env_key, (section, key) in BINARY_ENV_VARS.items():
            value = os.environ.get(env_key)
            if value:
                data.setdefault(section, {})[key] = value

    def options(self) -> list[ConfigStep]:
        """
        Configuration steps implied by the ``monitor`` and ``handshake``
        sections, to be passed ahead of per-container steps.
        """
        steps: list[ConfigStep] = []
        monitor = self.get("monitor") or DotDict()
        if monitor.get("path"):
            steps.append(with_path(str(monitor.get("path"))))
        if monitor.get("runtime"):
            steps.append(with_runtime_path(str(monitor.get("runtime"))))
        if monitor.get("log_level"):
            steps.append(with_log_level(str(monitor.get("log_level"))))
        if monitor.get("socket_dir"):
            steps.append(with_socket_path(str(monitor.get("socket_dir"))))

        timeout = self.get("handshake.timeout")
        if timeout is not None:
            steps.append(with_handshake_timeout(float(timeout)))
        full_output = self.get("handshake.full_output")
        if full_output is not None:
            steps.append(with_full_output(bool(full_output)))
        return steps

    def log_config(self) -> LogConfig:
        return LogConfig.from_config(self.to_dict())

    def create_logger(self) -> Logger:
        """Root logger configured from the ``logging`` section."""
        return LoggerFactory.create_root(self.log_config())
