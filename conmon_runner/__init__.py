from importlib.metadata import PackageNotFoundError, version

from .config import RunnerConfig
from .dot_dict import DotDict
from .exceptions import (
    AlreadyStartedError,
    ConfigurationError,
    EnvelopeParseError,
    ErrorCategory,
    GenericRuntimeError,
    HandshakeError,
    HandshakeReceiveError,
    InternalInvocationError,
    InvalidLogLevelError,
    InvocationTimeoutError,
    LifecycleError,
    MissingExecutableError,
    NoPidFileConfiguredError,
    NotFoundError,
    NotStartedError,
    OCIRuntimeError,
    PermissionDeniedError,
    PidReadError,
    PipeCreationError,
    PipeNotConfiguredError,
    RunnerError,
)
from .handshake import (
    HANDSHAKE_TIMEOUT,
    HandshakeEnvelope,
    classify_runtime_error,
    decode_envelope,
    parse_envelope,
    read_envelope,
    read_sync_data,
)
from .instance import MonitorInstance, create_and_start, new_instance
from .options import (
    ConfigStep,
    with_path,
    with_stdin,
    with_stdout,
    with_stderr,
    with_env,
    with_handshake_timeout,
    with_full_output,
    with_sync_pipe,
    with_start_pipe,
    with_attach_pipe,
    with_version,
    with_container_id,
    with_container_uuid,
    with_name,
    with_runtime_path,
    with_runtime_arg,
    with_runtime_opt,
    with_log_driver,
    with_log_path,
    with_log_size_max,
    with_log_global_size_max,
    with_log_tag,
    with_log_level,
    with_syslog,
    with_bundle_path,
    with_socket_path,
    with_full_attach,
    with_container_pid_file,
    with_monitor_pid_file,
    with_persist_dir,
    with_exit_dir,
    with_exit_command,
    with_exit_command_arg,
    with_exit_delay,
    with_timeout,
    with_terminal,
    with_stdin_pipe,
    with_leave_stdin_open,
    with_systemd_cgroup,
    with_no_pivot,
    with_no_new_keyring,
    with_no_sync_log,
    with_sync,
    with_exec,
    with_exec_process_spec,
    with_exec_attach,
    with_api_version,
    with_restore,
    with_sdnotify_socket,
    with_replace_listen_pid,
    with_seccomp_notify_socket,
    with_seccomp_notify_plugins,
)
from .pidfile import read_pid_file
from .pipes import Pipe, new_pipe
from .size import InvalidSizeError, parse_size

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("conmon-runner")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

# Explicit public API
__all__ = [
    "__version__",
    # Supervisor
    "MonitorInstance",
    "new_instance",
    "create_and_start",
    "RunnerConfig",
    "DotDict",
    # Pipes and files
    "Pipe",
    "new_pipe",
    "read_pid_file",
    "parse_size",
    "InvalidSizeError",
    # Handshake
    "HANDSHAKE_TIMEOUT",
    "HandshakeEnvelope",
    "classify_runtime_error",
    "decode_envelope",
    "parse_envelope",
    "read_envelope",
    "read_sync_data",
    # Exceptions
    "RunnerError",
    "ErrorCategory",
    "ConfigurationError",
    "MissingExecutableError",
    "InvalidLogLevelError",
    "LifecycleError",
    "NotStartedError",
    "AlreadyStartedError",
    "NoPidFileConfiguredError",
    "PipeNotConfiguredError",
    "PipeCreationError",
    "PidReadError",
    "HandshakeError",
    "InvocationTimeoutError",
    "HandshakeReceiveError",
    "EnvelopeParseError",
    "InternalInvocationError",
    "OCIRuntimeError",
    "GenericRuntimeError",
    "PermissionDeniedError",
    "NotFoundError",
    # Configuration steps
    "ConfigStep",
    "with_path",
    "with_stdin",
    "with_stdout",
    "with_stderr",
    "with_env",
    "with_handshake_timeout",
    "with_full_output",
    "with_sync_pipe",
    "with_start_pipe",
    "with_attach_pipe",
    "with_version",
    "with_container_id",
    "with_container_uuid",
    "with_name",
    "with_runtime_path",
    "with_runtime_arg",
    "with_runtime_opt",
    "with_log_driver",
    "with_log_path",
    "with_log_size_max",
    "with_log_global_size_max",
    "with_log_tag",
    "with_log_level",
    "with_syslog",
    "with_bundle_path",
    "with_socket_path",
    "with_full_attach",
    "with_container_pid_file",
    "with_monitor_pid_file",
    "with_persist_dir",
    "with_exit_dir",
    "with_exit_command",
    "with_exit_command_arg",
    "with_exit_delay",
    "with_timeout",
    "with_terminal",
    "with_stdin_pipe",
    "with_leave_stdin_open",
    "with_systemd_cgroup",
    "with_no_pivot",
    "with_no_new_keyring",
    "with_no_sync_log",
    "with_sync",
    "with_exec",
    "with_exec_process_spec",
    "with_exec_attach",
    "with_api_version",
    "with_restore",
    "with_sdnotify_socket",
    "with_replace_listen_pid",
    "with_seccomp_notify_socket",
    "with_seccomp_notify_plugins",
]
