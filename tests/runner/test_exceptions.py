"""
Tests for the runner exception hierarchy.

Tests key exception features including:
- Base RunnerError with context
- Handshake errors and their result codes
- Classified runtime errors and categories
- Exception inheritance
"""

import pytest

from conmon_runner.exceptions import (
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

# =============================================================================
# Test RunnerError Base Class
# =============================================================================


@pytest.mark.unit
class TestRunnerError:
    """Test RunnerError base class."""

    def test_with_message(self):
        """Test RunnerError with simple message."""
        error = RunnerError("Test error")
        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.context == {}

    def test_str_with_context(self):
        """Test string representation includes context."""
        error = RunnerError("Test error", pipe="sync", fd=3)
        assert str(error) == "Test error (pipe=sync, fd=3)"

    def test_can_be_caught_as_exception(self):
        """Test RunnerError is a regular Exception."""
        with pytest.raises(Exception, match="boom"):
            raise RunnerError("boom")


# =============================================================================
# Test Configuration and Lifecycle Errors
# =============================================================================


@pytest.mark.unit
class TestLifecycleErrors:
    """Test configuration and lifecycle errors."""

    def test_missing_executable_is_configuration_error(self):
        """Test MissingExecutableError message and base class."""
        error = MissingExecutableError()
        assert isinstance(error, ConfigurationError)
        assert str(error) == "monitor path not specified"

    def test_invalid_log_level_keeps_level(self):
        """Test InvalidLogLevelError carries the rejected level."""
        error = InvalidLogLevelError("loud")
        assert isinstance(error, ConfigurationError)
        assert error.level == "loud"
        assert "loud" in str(error)

    @pytest.mark.parametrize(
        "error",
        [
            NotStartedError(),
            AlreadyStartedError("start"),
            NoPidFileConfiguredError(),
            PipeNotConfiguredError("attach"),
        ],
    )
    def test_lifecycle_errors_share_base(self, error):
        """Test all lifecycle errors derive from LifecycleError."""
        assert isinstance(error, LifecycleError)
        assert isinstance(error, RunnerError)

    def test_already_started_names_operation(self):
        """Test AlreadyStartedError records the rejected operation."""
        error = AlreadyStartedError("configure")
        assert error.context == {"operation": "configure"}
        assert "operation=configure" in str(error)

    def test_pipe_not_configured_names_pipe(self):
        """Test PipeNotConfiguredError records the pipe name."""
        error = PipeNotConfiguredError("start")
        assert error.pipe == "start"
        assert str(error).startswith("start pipe was not configured")


# =============================================================================
# Test Resource Errors
# =============================================================================


@pytest.mark.unit
class TestResourceErrors:
    """Test OS resource errors."""

    def test_pid_read_error_keeps_cause(self):
        """Test PidReadError keeps path and underlying error."""
        cause = FileNotFoundError("gone")
        error = PidReadError("/run/conmon.pid", cause)
        assert error.path == "/run/conmon.pid"
        assert error.cause is cause
        assert "gone" in str(error)
        assert "path=/run/conmon.pid" in str(error)

    def test_pipe_creation_error_is_runner_error(self):
        """Test PipeCreationError base class."""
        assert issubclass(PipeCreationError, RunnerError)


# =============================================================================
# Test Handshake Errors
# =============================================================================


@pytest.mark.unit
class TestHandshakeErrors:
    """Test handshake failure types."""

    def test_timeout_message_and_category(self):
        """Test InvocationTimeoutError is an internal failure."""
        error = InvocationTimeoutError(2.5)
        assert error.message == "monitor invocation timeout: internal error"
        assert error.timeout == 2.5
        assert error.category is ErrorCategory.INTERNAL
        assert error.data == -1

    def test_internal_invocation_keeps_data(self):
        """Test InternalInvocationError carries the monitor's result code."""
        error = InternalInvocationError(-4)
        assert error.data == -4
        assert error.category is ErrorCategory.INTERNAL
        assert str(error) == "monitor invocation failed: internal error"

    def test_receive_error_wraps_cause(self):
        """Test HandshakeReceiveError keeps the transport error."""
        cause = EOFError("closed")
        error = HandshakeReceiveError(cause)
        assert error.cause is cause
        assert "closed" in str(error)

    def test_parse_error_keeps_raw_line(self):
        """Test EnvelopeParseError keeps reason and raw bytes."""
        error = EnvelopeParseError("bad", b"not json\n")
        assert error.reason == "bad"
        assert error.raw == b"not json\n"
        assert isinstance(error, HandshakeError)


# =============================================================================
# Test Classified Runtime Errors
# =============================================================================


@pytest.mark.unit
class TestRuntimeErrors:
    """Test classified OCI runtime errors."""

    @pytest.mark.parametrize(
        "error_cls,category,reason",
        [
            (GenericRuntimeError, ErrorCategory.RUNTIME, "OCI runtime error"),
            (
                PermissionDeniedError,
                ErrorCategory.PERMISSION_DENIED,
                "OCI permission denied",
            ),
            (
                NotFoundError,
                ErrorCategory.NOT_FOUND,
                "OCI runtime attempted to invoke a command that was not found",
            ),
        ],
    )
    def test_category_and_message(self, error_cls, category, reason):
        """Test each class renders detail followed by its reason."""
        error = error_cls("runc failed", data=-2)
        assert isinstance(error, OCIRuntimeError)
        assert error.category is category
        assert error.detail == "runc failed"
        assert error.data == -2
        assert str(error) == f"runc failed: {reason}"

    def test_runtime_errors_are_not_handshake_errors(self):
        """Test runtime failures and handshake failures are separate branches."""
        assert not issubclass(OCIRuntimeError, HandshakeError)
        assert issubclass(OCIRuntimeError, RunnerError)
