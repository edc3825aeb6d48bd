"""
Tests for pipes.py and pidfile.py.

Tests key functionality including:
- Socket pair creation and closing
- Allocation failures
- PID file parsing
"""

import socket
from unittest.mock import patch

import pytest

from conmon_runner.exceptions import PipeCreationError
from conmon_runner.pidfile import read_pid_file
from conmon_runner.pipes import Pipe, new_pipe

# =============================================================================
# Test Pipe Creation
# =============================================================================


@pytest.mark.unit
class TestNewPipe:
    """Test new_pipe()."""

    def test_ends_are_connected(self):
        """Test data written on the child end arrives on the parent end."""
        pipe = new_pipe()
        try:
            pipe.child.sendall(b'{"data": 1}\n')
            assert pipe.parent.recv(64) == b'{"data": 1}\n'
        finally:
            pipe.close()

    def test_sequenced_packet_sockets(self):
        """Test both ends are local sequenced-packet sockets."""
        pipe = new_pipe()
        try:
            assert pipe.parent.family == socket.AF_UNIX
            assert pipe.parent.type == socket.SOCK_SEQPACKET
        finally:
            pipe.close()

    def test_ends_are_not_inheritable(self):
        """Test neither end leaks into unrelated children."""
        pipe = new_pipe()
        try:
            assert not pipe.parent.get_inheritable()
            assert not pipe.child.get_inheritable()
        finally:
            pipe.close()

    def test_os_failure_is_wrapped(self):
        """Test an allocation failure raises PipeCreationError."""
        with patch(
            "conmon_runner.pipes.socket.socketpair",
            side_effect=OSError(24, "Too many open files"),
        ):
            with pytest.raises(PipeCreationError, match="Too many open files"):
                new_pipe()


# =============================================================================
# Test Pipe Closing
# =============================================================================


@pytest.mark.unit
class TestPipeClose:
    """Test closing pipe ends."""

    def test_close_child_keeps_parent(self):
        """Test closing the child end leaves the parent usable."""
        pipe = new_pipe()
        pipe.close_child()
        assert pipe.child.fileno() == -1
        assert pipe.parent.fileno() >= 0
        pipe.close()

    def test_parent_sees_end_of_stream(self):
        """Test the parent reads EOF once the child end is closed."""
        pipe = new_pipe()
        pipe.close_child()
        assert pipe.parent.recv(16) == b""
        pipe.close()

    def test_close_twice(self):
        """Test closing is idempotent."""
        pipe = new_pipe()
        pipe.close()
        pipe.close()
        assert pipe.parent.fileno() == -1
        assert pipe.child.fileno() == -1

    def test_pipe_is_plain_dataclass(self):
        """Test a Pipe can wrap an existing pair."""
        a, b = socket.socketpair()
        pipe = Pipe(parent=a, child=b)
        assert pipe.parent is a
        pipe.close()


# =============================================================================
# Test PID File Reading
# =============================================================================


@pytest.mark.unit
class TestReadPidFile:
    """Test read_pid_file()."""

    def test_plain_number(self, temp_dir):
        """Test a bare PID is read."""
        path = temp_dir / "conmon.pid"
        path.write_text("4242")
        assert read_pid_file(path) == 4242

    def test_surrounding_whitespace(self, temp_dir):
        """Test a trailing newline and spaces are ignored."""
        path = temp_dir / "conmon.pid"
        path.write_text("  4242\n")
        assert read_pid_file(str(path)) == 4242

    def test_missing_file(self, temp_dir):
        """Test a missing file raises OSError."""
        with pytest.raises(FileNotFoundError):
            read_pid_file(temp_dir / "absent.pid")

    @pytest.mark.parametrize("content", ["", "abc", "12 34", "0x10"])
    def test_not_a_number(self, temp_dir, content):
        """Test non-decimal contents raise ValueError."""
        path = temp_dir / "conmon.pid"
        path.write_text(content)
        with pytest.raises(ValueError):
            read_pid_file(path)
