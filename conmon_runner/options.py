"""
Configuration steps for monitor instances.

Each ``with_*`` function returns a step: a callable that mutates a
MonitorInstance that has not started yet, or raises ConfigurationError.
Applying a step to a started instance raises AlreadyStartedError.
Steps are applied in the order given:

    instance = MonitorInstance.create(
        with_path("/usr/bin/conmon"),
        with_container_id(ctr_id),
        with_container_uuid(ctr_id),
        with_runtime_path("/usr/bin/runc"),
        with_log_driver("k8s-file", log_path),
        with_api_version(),
        with_sync_pipe(),
    )

Single-valued options replace earlier values (last write wins). Repeatable
options (log drivers, runtime args and opts, exit command args) append in
call order. Paths and levels are handed to the monitor unchecked; the
monitor validates them and reports problems on stderr.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import IO, TYPE_CHECKING, Any

from .exceptions import ConfigurationError
from .pipes import new_pipe
from .size import InvalidSizeError, parse_size

if TYPE_CHECKING:
    from .instance import MonitorInstance

ConfigStep = Callable[["MonitorInstance"], None]

# Anything subprocess.Popen accepts for a standard stream
StreamBinding = int | IO[Any] | None


def _flag(flag: str) -> ConfigStep:
    def step(ci: MonitorInstance) -> None:
        ci.set_arg(flag)

    return step


def _value(flag: str, value: object) -> ConfigStep:
    def step(ci: MonitorInstance) -> None:
        ci.set_arg(flag, str(value))

    return step


def _repeat(flag: str, value: object) -> ConfigStep:
    def step(ci: MonitorInstance) -> None:
        ci.add_arg(flag, str(value))

    return step


# =============================================================================
# Process setup
# =============================================================================


def with_path(path: str) -> ConfigStep:
    """Set the monitor executable."""

    def step(ci: MonitorInstance) -> None:
        if not path:
            raise ConfigurationError("monitor path cannot be empty")
        ci.path = path

    return step


def with_stdin(stdin: StreamBinding) -> ConfigStep:
    def step(ci: MonitorInstance) -> None:
        ci.stdin_binding = stdin

    return step


def with_stdout(stdout: StreamBinding) -> ConfigStep:
    def step(ci: MonitorInstance) -> None:
        ci.stdout_binding = stdout

    return step


def with_stderr(stderr: StreamBinding) -> ConfigStep:
    def step(ci: MonitorInstance) -> None:
        ci.stderr_binding = stderr

    return step


def with_env(key: str, value: str) -> ConfigStep:
    """
    Add an environment variable for the monitor.

    The monitor inherits this process's environment; pipe variables are
    added last and cannot be overridden here.
    """

    def step(ci: MonitorInstance) -> None:
        ci.set_env(key, value)

    return step


def with_handshake_timeout(timeout: float) -> ConfigStep:
    """Set how long handshake reads wait for the monitor (seconds)."""

    def step(ci: MonitorInstance) -> None:
        if timeout <= 0:
            raise ConfigurationError(
                "handshake timeout must be positive", timeout=timeout
            )
        ci.handshake_timeout = timeout

    return step


def with_full_output(enabled: bool = True) -> ConfigStep:
    """Choose whether classified errors keep the full diagnostic text."""

    def step(ci: MonitorInstance) -> None:
        ci.full_output = enabled

    return step


# =============================================================================
# Pipes
# =============================================================================


def with_sync_pipe() -> ConfigStep:
    """Request the pipe the monitor reports container PID and exit status on."""

    def step(ci: MonitorInstance) -> None:
        ci.add_pipe("sync", new_pipe())

    return step


def with_start_pipe() -> ConfigStep:
    """Request the pipe the monitor blocks on until signal_start() is called."""

    def step(ci: MonitorInstance) -> None:
        ci.add_pipe("start", new_pipe())

    return step


def with_attach_pipe() -> ConfigStep:
    """Request the pipe the monitor uses to announce attach readiness."""

    def step(ci: MonitorInstance) -> None:
        ci.add_pipe("attach", new_pipe())

    return step


# =============================================================================
# Monitor arguments
# =============================================================================


def with_version() -> ConfigStep:
    return _flag("--version")


def with_container_id(ctr_id: str) -> ConfigStep:
    return _value("--cid", ctr_id)


def with_container_uuid(ctr_uuid: str) -> ConfigStep:
    return _value("--cuuid", ctr_uuid)


def with_name(name: str) -> ConfigStep:
    return _value("--name", name)


def with_runtime_path(path: str) -> ConfigStep:
    return _value("--runtime", path)


def with_runtime_arg(arg: str) -> ConfigStep:
    return _repeat("--runtime-arg", arg)


def with_runtime_opt(opt: str) -> ConfigStep:
    return _repeat("--runtime-opt", opt)


def with_log_driver(driver: str, path: str) -> ConfigStep:
    """
    Add a log driver specification.

    Renders as ``driver:path``, or the bare path when ``driver`` is empty.
    May be given several times to log to several drivers.
    """
    spec = f"{driver}:{path}" if driver else path
    return _repeat("--log-path", spec)


def with_log_path(path: str) -> ConfigStep:
    """Log to a single path, replacing every earlier log driver option."""

    def step(ci: MonitorInstance) -> None:
        ci.reset_arg("--log-path", path)

    return step


def _size_value(flag: str, size: int | str) -> ConfigStep:
    def step(ci: MonitorInstance) -> None:
        try:
            value = parse_size(size)
        except InvalidSizeError as e:
            raise ConfigurationError(str(e), option=flag) from e
        ci.set_arg(flag, str(value))

    return step


def with_log_size_max(size: int | str) -> ConfigStep:
    """Limit each log file; accepts bytes or a string such as ``"10MB"``."""
    return _size_value("--log-size-max", size)


def with_log_global_size_max(size: int | str) -> ConfigStep:
    return _size_value("--log-global-size-max", size)


def with_log_tag(tag: str) -> ConfigStep:
    return _value("--log-tag", tag)


def with_log_level(level: str) -> ConfigStep:
    return _value("--log-level", level)


def with_syslog() -> ConfigStep:
    return _flag("--syslog")


def with_bundle_path(path: str) -> ConfigStep:
    return _value("--bundle", path)


def with_socket_path(path: str) -> ConfigStep:
    """
    Set the attach socket directory.

    The container ID is not appended; callers pass the final directory.
    """
    return _value("--socket-dir-path", path)


def with_full_attach() -> ConfigStep:
    return _flag("--full-attach")


def with_container_pid_file(path: str) -> ConfigStep:
    return _value("--container-pidfile", path)


def with_monitor_pid_file(path: str) -> ConfigStep:
    """Have the monitor write its own PID to ``path``; read back with pid()."""

    def step(ci: MonitorInstance) -> None:
        ci.pid_file = path
        ci.set_arg("--conmon-pidfile", path)

    return step


def with_persist_dir(path: str) -> ConfigStep:
    return _value("--persist-dir", path)


def with_exit_dir(path: str) -> ConfigStep:
    return _value("--exit-dir", path)


def with_exit_command(path: str) -> ConfigStep:
    return _value("--exit-command", path)


def with_exit_command_arg(arg: str) -> ConfigStep:
    return _repeat("--exit-command-arg", arg)


def with_exit_delay(seconds: int) -> ConfigStep:
    def step(ci: MonitorInstance) -> None:
        if seconds < 0:
            raise ConfigurationError(
                "exit delay must be greater than or equal to 0", seconds=seconds
            )
        ci.set_arg("--exit-delay", str(seconds))

    return step


def with_timeout(seconds: int) -> ConfigStep:
    """Kill the container after ``seconds``."""
    return _value("--timeout", seconds)


def with_terminal() -> ConfigStep:
    return _flag("--terminal")


def with_stdin_pipe() -> ConfigStep:
    """Ask the monitor to open a pipe for container stdin (``--stdin``)."""
    return _flag("--stdin")


def with_leave_stdin_open() -> ConfigStep:
    return _flag("--leave-stdin-open")


def with_systemd_cgroup() -> ConfigStep:
    return _flag("--systemd-cgroup")


def with_no_pivot() -> ConfigStep:
    return _flag("--no-pivot")


def with_no_new_keyring() -> ConfigStep:
    return _flag("--no-new-keyring")


def with_no_sync_log() -> ConfigStep:
    return _flag("--no-sync-log")


def with_sync() -> ConfigStep:
    return _flag("--sync")


def with_exec() -> ConfigStep:
    return _flag("--exec")


def with_exec_process_spec(path: str) -> ConfigStep:
    return _value("--exec-process-spec", path)


def with_exec_attach() -> ConfigStep:
    return _flag("--exec-attach")


def with_api_version() -> ConfigStep:
    return _flag("--api-version")


def with_restore(path: str) -> ConfigStep:
    return _value("--restore", path)


def with_sdnotify_socket(path: str) -> ConfigStep:
    return _value("--sdnotify-socket", path)


def with_replace_listen_pid() -> ConfigStep:
    return _flag("--replace-listen-pid")


def with_seccomp_notify_socket(path: str) -> ConfigStep:
    return _value("--seccomp-notify-socket", path)


def with_seccomp_notify_plugins(plugins: str) -> ConfigStep:
    return _value("--seccomp-notify-plugins", plugins)
