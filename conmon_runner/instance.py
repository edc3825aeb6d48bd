"""
Monitor process supervision.

A MonitorInstance owns exactly one monitor subprocess: it collects arguments
and pipes through configuration steps, launches the monitor with the
requested pipes inherited at fixed descriptor slots, and reads handshake
results back from the parent ends.

Example:
    with MonitorInstance.create(
        with_path(conmon_path),
        with_container_id(ctr_id),
        with_container_uuid(ctr_id),
        with_runtime_path(runtime_path),
        with_log_driver("k8s-file", log_path),
        with_api_version(),
        with_sync_pipe(),
    ) as ci:
        ci.start()
        ci.wait()
        container_pid = ci.container_exit_code()
"""

from __future__ import annotations

import contextlib
import fcntl
import logging
import os
import socket
import subprocess
from collections.abc import Callable, Iterator
from typing import IO, Any

from .exceptions import (
    AlreadyStartedError,
    MissingExecutableError,
    NoPidFileConfiguredError,
    NotStartedError,
    OCIRuntimeError,
    PidReadError,
    PipeNotConfiguredError,
)
from .handshake import HANDSHAKE_TIMEOUT, read_sync_data
from .log import LogConstants
from .options import ConfigStep, StreamBinding
from .pidfile import read_pid_file
from .pipes import Pipe

logger = logging.getLogger("conmon_runner.instance")

# First descriptor slot after stdin, stdout and stderr
FIRST_INHERITED_FD = 3

# Wiring order and variable names are shared with the monitor binary
PIPE_ENV_NAMES = (
    ("sync", "_OCI_SYNCPIPE"),
    ("start", "_OCI_STARTPIPE"),
    ("attach", "_OCI_ATTACHPIPE"),
)


def _relocate_fds(fds: list[int]) -> Callable[[], None]:
    """
    Build a preexec hook that moves ``fds`` onto slots 3, 4, ... in order.

    Sources are first duplicated above the target range so that a source
    already sitting on a target slot is not overwritten before it is moved.
    The duplicates made by dup2 are inheritable and survive exec.
    """

    def relocate() -> None:
        floor = FIRST_INHERITED_FD + len(fds)
        staged = [fcntl.fcntl(fd, fcntl.F_DUPFD, floor) for fd in fds]
        for target, fd in enumerate(staged, start=FIRST_INHERITED_FD):
            os.dup2(fd, target)
            os.close(fd)

    return relocate


def _fd_is_open(fd: int) -> bool:
    try:
        os.fstat(fd)
    except OSError:
        return False
    return True


@contextlib.contextmanager
def _reserve_fds(count: int) -> Iterator[None]:
    """
    Occupy free slots in the inherited range while the child is spawned.

    subprocess opens an internal error-reporting pipe for the fork; if it
    landed on a slot the child later relocates a pipe onto, exec failures
    would be lost. Placeholders keep that pipe above the range.
    """
    placeholders: list[int] = []
    devnull = os.open(os.devnull, os.O_RDONLY | os.O_CLOEXEC)
    try:
        for fd in range(FIRST_INHERITED_FD, FIRST_INHERITED_FD + count):
            if fd != devnull and not _fd_is_open(fd):
                placeholders.append(os.dup2(devnull, fd, inheritable=False))
        yield
    finally:
        for fd in placeholders:
            os.close(fd)
        os.close(devnull)


class _Setting:
    """Instance attribute that can only be assigned before start()."""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.attr = f"_{name}"

    def __get__(self, ci: MonitorInstance | None, owner: type | None = None) -> Any:
        if ci is None:
            return self
        return getattr(ci, self.attr)

    def __set__(self, ci: MonitorInstance, value: Any) -> None:
        ci._ensure_configurable(f"set {self.name}")
        setattr(ci, self.attr, value)


class MonitorInstance:
    """
    One monitor subprocess and the pipes shared with it.

    Lifecycle: created and configured, started exactly once, waited on, then
    cleaned up. Configuration is rejected once the instance has started,
    whether it comes through configure(), a step called directly, or an
    attribute assignment.

    Args:
        lg: Logger for lifecycle events (defaults to the module logger)
    """

    path = _Setting()
    stdin_binding = _Setting()
    stdout_binding = _Setting()
    stderr_binding = _Setting()
    pid_file = _Setting()
    handshake_timeout = _Setting()
    full_output = _Setting()

    def __init__(self, lg: logging.Logger | None = None) -> None:
        self._lg = lg if lg is not None else logger
        self._started = False
        self.path = ""
        self.stdin_binding: StreamBinding = None
        self.stdout_binding: StreamBinding = None
        self.stderr_binding: StreamBinding = None
        self.pid_file: str | None = None
        self.handshake_timeout = HANDSHAKE_TIMEOUT
        self.full_output = True
        self.pipes: dict[str, Pipe] = {}
        self._extra_env: dict[str, str] = {}
        self._args: list[tuple[str, str | None]] = []
        self._process: subprocess.Popen | None = None

    @classmethod
    def create(
        cls, *steps: ConfigStep, lg: logging.Logger | None = None
    ) -> MonitorInstance:
        """
        Build an instance from configuration steps.

        Pipes created by earlier steps are closed if a later step fails.

        Raises:
            ConfigurationError: A step rejected its input
            MissingExecutableError: No step set the monitor path
            PipeCreationError: A requested pipe could not be allocated
        """
        ci = cls(lg=lg)
        try:
            ci.configure(*steps)
            if not ci.path:
                raise MissingExecutableError()
        except Exception:
            ci.cleanup()
            raise
        return ci

    def __enter__(self) -> MonitorInstance:
        return self

    def __exit__(self, *args: object) -> None:
        self.cleanup()

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def _ensure_configurable(self, operation: str) -> None:
        if self._started:
            raise AlreadyStartedError(operation)

    def configure(self, *steps: ConfigStep) -> MonitorInstance:
        """Apply configuration steps in order."""
        for step in steps:
            self._ensure_configurable("configure")
            step(self)
        return self

    def set_arg(self, flag: str, value: str | None = None) -> None:
        """Set a single-valued argument, replacing any earlier value."""
        self._ensure_configurable("set_arg")
        for i, (existing, _) in enumerate(self._args):
            if existing == flag:
                self._args[i] = (flag, value)
                return
        self._args.append((flag, value))

    def add_arg(self, flag: str, value: str | None = None) -> None:
        """Append a repeatable argument."""
        self._ensure_configurable("add_arg")
        self._args.append((flag, value))

    def reset_arg(self, flag: str, value: str | None = None) -> None:
        """Drop every occurrence of a repeatable argument, then add one."""
        self._ensure_configurable("reset_arg")
        self._args = [(f, v) for f, v in self._args if f != flag]
        self._args.append((flag, value))

    def set_env(self, key: str, value: str) -> None:
        """Add an environment variable for the monitor."""
        self._ensure_configurable("set_env")
        self._extra_env[key] = value

    @property
    def extra_env(self) -> dict[str, str]:
        """Caller-supplied environment variables (a copy)."""
        return dict(self._extra_env)

    def add_pipe(self, name: str, pipe: Pipe) -> None:
        """Register a pipe; requesting the same pipe again replaces it."""
        self._ensure_configurable("add_pipe")
        previous = self.pipes.get(name)
        if previous is not None:
            previous.close()
        self.pipes[name] = pipe

    # -------------------------------------------------------------------------
    # Launch description
    # -------------------------------------------------------------------------

    @property
    def args(self) -> list[str]:
        """Monitor arguments, without the executable."""
        rendered: list[str] = []
        for flag, value in self._args:
            rendered.append(flag)
            if value is not None:
                rendered.append(value)
        return rendered

    @property
    def argv(self) -> list[str]:
        return [self.path, *self.args]

    def _wired_pipes(self) -> list[tuple[str, Pipe]]:
        return [
            (env_name, self.pipes[name])
            for name, env_name in PIPE_ENV_NAMES
            if name in self.pipes
        ]

    @property
    def pipe_env(self) -> dict[str, str]:
        """Descriptor slot of each requested pipe, keyed by variable name."""
        return {
            env_name: str(slot)
            for slot, (env_name, _) in enumerate(
                self._wired_pipes(), start=FIRST_INHERITED_FD
            )
        }

    @property
    def env(self) -> dict[str, str]:
        """Full environment the monitor is launched with."""
        return {**os.environ, **self.extra_env, **self.pipe_env}

    @property
    def inherited_fds(self) -> list[int]:
        """Child-held descriptors, in the order they occupy slots 3, 4, ..."""
        return [pipe.child.fileno() for _, pipe in self._wired_pipes()]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._started

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    @property
    def exited(self) -> bool:
        return self._process is not None and self._process.poll() is not None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def process_pid(self) -> int | None:
        """PID of the launched process (the monitor may fork away from it)."""
        return self._process.pid if self._process is not None else None

    def start(self) -> None:
        """
        Launch the monitor.

        Errors from process creation (missing executable, permissions) are
        raised unchanged.

        Raises:
            AlreadyStartedError: start() was already called
            MissingExecutableError: No monitor path is configured
            OSError: The process could not be created
        """
        if self._started:
            raise AlreadyStartedError("start")
        if not self.path:
            raise MissingExecutableError()

        fds = self.inherited_fds
        env = self.env
        argv = self.argv
        self._started = True

        self._lg.debug("starting monitor", extra={"argv": " ".join(argv)})
        for env_name, slot in self.pipe_env.items():
            self._lg.log(
                LogConstants.TRACE, "wiring pipe", extra={"pipe": env_name, "fd": slot}
            )
        with _reserve_fds(len(fds)):
            self._process = subprocess.Popen(
                argv,
                stdin=self.stdin_binding,
                stdout=self.stdout_binding,
                stderr=self.stderr_binding,
                env=env,
                close_fds=False,
                preexec_fn=_relocate_fds(fds) if fds else None,
            )
        self._lg.debug("monitor started", extra={"pid": self._process.pid})

    def wait(self, timeout: float | None = None) -> int:
        """
        Block until the monitor exits.

        The child-held pipe ends are closed afterwards whatever the outcome;
        keeping them open would stop readers from ever seeing end-of-stream.

        Returns:
            The monitor's exit status

        Raises:
            NotStartedError: The instance was never started
            subprocess.TimeoutExpired: ``timeout`` passed first
        """
        if not self._started or self._process is None:
            raise NotStartedError()
        try:
            returncode = self._process.wait(timeout=timeout)
        finally:
            self._close_child_ends()
        self._lg.debug("monitor exited", extra={"returncode": returncode})
        return returncode

    def pid(self) -> int:
        """
        Read the monitor PID from its PID file.

        Raises:
            NoPidFileConfiguredError: No monitor PID file option was given
            NotStartedError: The instance was never started
            PidReadError: The file is missing or does not hold a number
        """
        if self.pid_file is None:
            raise NoPidFileConfiguredError()
        if not self._started:
            raise NotStartedError()
        try:
            return read_pid_file(self.pid_file)
        except (OSError, ValueError) as e:
            raise PidReadError(self.pid_file, e) from e

    def cleanup(self) -> None:
        """Close every pipe end this instance holds. Never raises."""
        for name, pipe in self.pipes.items():
            try:
                pipe.close()
            except OSError as e:
                self._lg.debug(
                    "failed to close pipe", extra={"pipe": name, "error": str(e)}
                )

    def _close_child_ends(self) -> None:
        for name, pipe in self.pipes.items():
            try:
                pipe.close_child()
            except OSError as e:
                self._lg.debug(
                    "failed to close child pipe end",
                    extra={"pipe": name, "error": str(e)},
                )

    # -------------------------------------------------------------------------
    # Streams
    # -------------------------------------------------------------------------

    def _stream(self, process_stream: IO[Any] | None, binding: StreamBinding) -> Any:
        if not self._started:
            raise NotStartedError()
        return process_stream if process_stream is not None else binding

    @property
    def stdin(self) -> Any:
        """Monitor stdin: the PIPE end when one was requested, else the binding."""
        process_stream = self._process.stdin if self._process else None
        return self._stream(process_stream, self.stdin_binding)

    @property
    def stdout(self) -> Any:
        process_stream = self._process.stdout if self._process else None
        return self._stream(process_stream, self.stdout_binding)

    @property
    def stderr(self) -> Any:
        process_stream = self._process.stderr if self._process else None
        return self._stream(process_stream, self.stderr_binding)

    # -------------------------------------------------------------------------
    # Handshake
    # -------------------------------------------------------------------------

    def _parent_end(self, name: str) -> socket.socket:
        pipe = self.pipes.get(name)
        if pipe is None:
            raise PipeNotConfiguredError(name)
        return pipe.parent

    def _read_result(self, name: str, timeout: float | None) -> int:
        sock = self._parent_end(name)
        try:
            return read_sync_data(
                sock,
                timeout=timeout if timeout is not None else self.handshake_timeout,
                full_output=self.full_output,
            )
        except OCIRuntimeError as e:
            self._lg.warning(
                "monitor reported runtime failure",
                extra={"pipe": name, "category": e.category.value, "data": e.data},
            )
            raise

    def container_exit_code(self, timeout: float | None = None) -> int:
        """
        Read one result from the sync pipe.

        Depending on the monitor mode this is the container PID or the exit
        status of an exec session. The monitor only reports in the expected
        ``{"data": N}`` form when started with ``with_api_version()``.

        A read that timed out cannot be retried: the abandoned reader keeps
        waiting on the pipe and consumes the next result, so a later call
        times out even if the monitor did report.

        Raises:
            PipeNotConfiguredError: No sync pipe was requested
            HandshakeError: Timeout, transport or envelope failure
            OCIRuntimeError: The runtime reported a classified failure
        """
        return self._read_result("sync", timeout)

    def wait_for_attach(self, timeout: float | None = None) -> int:
        """Block until the monitor reports its attach socket is ready."""
        return self._read_result("attach", timeout)

    def signal_start(self) -> None:
        """
        Release a monitor blocked on the start pipe.

        Raises:
            NotStartedError: The instance was never started
            PipeNotConfiguredError: No start pipe was requested
        """
        sock = self._parent_end("start")
        if not self._started:
            raise NotStartedError()
        sock.sendall(b"0")
        self._lg.debug("sent start signal to monitor")


def new_instance(
    *steps: ConfigStep, lg: logging.Logger | None = None
) -> MonitorInstance:
    """Shorthand for MonitorInstance.create()."""
    return MonitorInstance.create(*steps, lg=lg)


def create_and_start(
    *steps: ConfigStep, lg: logging.Logger | None = None
) -> MonitorInstance:
    """
    Build an instance and start it.

    The instance's pipes are closed if the launch fails.
    """
    ci = MonitorInstance.create(*steps, lg=lg)
    try:
        ci.start()
    except Exception:
        ci.cleanup()
        raise
    return ci
