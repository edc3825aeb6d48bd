"""
Exception hierarchy for the monitor runner.

Every error raised by this package derives from RunnerError, so callers can
catch all runner failures with a single except clause while still telling
configuration mistakes, lifecycle misuse, handshake failures and classified
runtime errors apart.
"""

from __future__ import annotations

import enum
from typing import Any


class ErrorCategory(enum.Enum):
    """Closed set of categories a failed invocation is sorted into."""

    INTERNAL = "internal"
    RUNTIME = "runtime"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"


class RunnerError(Exception):
    """
    Base exception for all runner errors.

    Example:
        try:
            instance.start()
            instance.wait()
        except RunnerError as e:
            lg.error("monitor failed", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


# =============================================================================
# Configuration and lifecycle
# =============================================================================


class ConfigurationError(RunnerError):
    """
    Raised when a configuration step rejects its input.

    Examples:
        - Empty executable path
        - Negative exit delay
        - Unparsable log size limit
    """

    pass


class MissingExecutableError(ConfigurationError):
    """Raised when an instance is created without an executable path."""

    def __init__(self) -> None:
        super().__init__("monitor path not specified")


class InvalidLogLevelError(ConfigurationError):
    """Raised when a log level name or value is not recognized."""

    def __init__(self, level: Any) -> None:
        super().__init__(f"Invalid log level: {level}")
        self.level = level


class LifecycleError(RunnerError):
    """Raised when instance operations are called out of order."""

    pass


class NotStartedError(LifecycleError):
    """Raised by operations that need a started instance."""

    def __init__(self) -> None:
        super().__init__("monitor instance is not started")


class AlreadyStartedError(LifecycleError):
    """Raised when configuring or starting an instance that already started."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            "monitor instance cannot be changed after it is started",
            operation=operation,
        )
        self.operation = operation


class NoPidFileConfiguredError(LifecycleError):
    """Raised when reading the monitor PID without a PID file option."""

    def __init__(self) -> None:
        super().__init__("monitor PID file was not configured")


class PipeNotConfiguredError(LifecycleError):
    """Raised when an operation needs a pipe that was never requested."""

    def __init__(self, pipe: str) -> None:
        super().__init__(f"{pipe} pipe was not configured", pipe=pipe)
        self.pipe = pipe


# =============================================================================
# OS resources
# =============================================================================


class PipeCreationError(RunnerError):
    """Raised when a local socket pair cannot be allocated."""

    pass


class PidReadError(RunnerError):
    """Raised when the monitor PID file is missing or unparsable."""

    def __init__(self, path: str, cause: Exception) -> None:
        super().__init__(f"failed to read monitor PID file: {cause}", path=path)
        self.path = path
        self.cause = cause


# =============================================================================
# Handshake
# =============================================================================


class HandshakeError(RunnerError):
    """
    Base for failures while reading a handshake envelope.

    Attributes:
        data: Result value reported alongside the failure (-1 unless the
            monitor sent its own negative code)
    """

    category = ErrorCategory.INTERNAL

    def __init__(self, message: str, data: int = -1, **context: Any) -> None:
        super().__init__(message, **context)
        self.data = data


class InvocationTimeoutError(HandshakeError):
    """Raised when no envelope arrives before the handshake deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__("monitor invocation timeout: internal error", timeout=timeout)
        self.timeout = timeout


class HandshakeReceiveError(HandshakeError):
    """Raised when the pipe fails or closes before a full envelope arrives."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"error receiving handshake data: {cause}")
        self.cause = cause


class EnvelopeParseError(HandshakeError):
    """Raised when the received line is not a valid envelope."""

    def __init__(self, reason: str, raw: bytes) -> None:
        super().__init__(f"invalid handshake envelope: {reason}", raw=raw[:80])
        self.reason = reason
        self.raw = raw


class InternalInvocationError(HandshakeError):
    """Raised for a negative result code that came without a diagnostic."""

    def __init__(self, data: int) -> None:
        super().__init__("monitor invocation failed: internal error", data=data)


# =============================================================================
# Classified runtime errors
# =============================================================================


class OCIRuntimeError(RunnerError):
    """
    Failure reported by the OCI runtime through the monitor.

    Attributes:
        detail: Diagnostic text reported by the monitor
        data: Negative result code from the envelope
        category: Classification of the diagnostic
    """

    category = ErrorCategory.RUNTIME
    reason = "OCI runtime error"

    def __init__(self, detail: str, data: int = -1) -> None:
        super().__init__(f"{detail}: {self.reason}")
        self.detail = detail
        self.data = data


class GenericRuntimeError(OCIRuntimeError):
    """Runtime failure that matched no more specific category."""

    pass


class PermissionDeniedError(OCIRuntimeError):
    """The runtime tried to do something it was not permitted to do."""

    category = ErrorCategory.PERMISSION_DENIED
    reason = "OCI permission denied"


class NotFoundError(OCIRuntimeError):
    """The runtime tried to invoke a command or path that does not exist."""

    category = ErrorCategory.NOT_FOUND
    reason = "OCI runtime attempted to invoke a command that was not found"
