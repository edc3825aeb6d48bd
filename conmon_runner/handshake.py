"""
Handshake envelope decoding.

The monitor reports results over the sync pipe as one newline-terminated JSON
object per message:

    {"data": 12345}
    {"data": -1, "message": "permission denied: /usr/bin/runc"}

A non-negative ``data`` is a success value (container PID or exit status).
A negative ``data`` is a failure; when a diagnostic message accompanies it the
message is classified into a runtime error category.
"""

from __future__ import annotations

import json
import logging
import queue
import re
import socket
import threading
from dataclasses import dataclass

from .exceptions import (
    EnvelopeParseError,
    GenericRuntimeError,
    HandshakeReceiveError,
    InternalInvocationError,
    InvocationTimeoutError,
    NotFoundError,
    OCIRuntimeError,
    PermissionDeniedError,
)

logger = logging.getLogger("conmon_runner.handshake")

# Seconds to wait for the monitor to answer before giving up
HANDSHAKE_TIMEOUT = 60.0

_RECV_SIZE = 4096

# Checked in order, first match wins
_CLASSIFIERS: list[tuple[re.Pattern[str], type[OCIRuntimeError]]] = [
    (
        re.compile(r".*permission denied.*|.*operation not permitted.*", re.IGNORECASE),
        PermissionDeniedError,
    ),
    (
        re.compile(
            r".*executable file not found in.*|.*no such file or directory.*",
            re.IGNORECASE,
        ),
        NotFoundError,
    ),
]


@dataclass(frozen=True)
class HandshakeEnvelope:
    """One message read from a handshake pipe."""

    data: int
    message: str = ""

    @property
    def failed(self) -> bool:
        return self.data < 0


def classify_runtime_error(
    message: str, data: int = -1, full_output: bool = True
) -> OCIRuntimeError:
    """
    Map a runtime diagnostic to a classified error.

    Args:
        message: Diagnostic text sent by the monitor
        data: Negative result code that accompanied the message
        full_output: Keep the whole message as the error detail. When False,
            only the line that matched a category is kept.

    Returns:
        PermissionDeniedError, NotFoundError or GenericRuntimeError
    """
    for pattern, error_cls in _CLASSIFIERS:
        match = pattern.search(message)
        if match:
            detail = message if full_output else match.group(0)
            return error_cls(detail.strip("\n"), data=data)
    return GenericRuntimeError(message.strip("\n"), data=data)


def parse_envelope(line: bytes) -> HandshakeEnvelope:
    """
    Parse one envelope line.

    Raises:
        EnvelopeParseError: If the line is not a JSON object with an integer
            ``data`` field and an optional string ``message`` field
    """
    try:
        payload = json.loads(line)
    except ValueError as e:
        raise EnvelopeParseError(str(e), line) from e

    if not isinstance(payload, dict):
        raise EnvelopeParseError("expected a JSON object", line)

    data = payload.get("data")
    # bool is an int subclass, but true/false is not a result code
    if isinstance(data, bool) or not isinstance(data, int):
        raise EnvelopeParseError("'data' must be an integer", line)

    message = payload.get("message")
    if message is None:
        message = ""
    elif not isinstance(message, str):
        raise EnvelopeParseError("'message' must be a string", line)

    return HandshakeEnvelope(data=data, message=message)


def decode_envelope(envelope: HandshakeEnvelope, full_output: bool = True) -> int:
    """
    Turn an envelope into a result value or raise the failure it describes.

    Raises:
        OCIRuntimeError: Negative result with a diagnostic message
        InternalInvocationError: Negative result without a message
    """
    if not envelope.failed:
        return envelope.data
    if envelope.message:
        raise classify_runtime_error(
            envelope.message, data=envelope.data, full_output=full_output
        )
    raise InternalInvocationError(envelope.data)


def _read_line(sock: socket.socket) -> bytes:
    """Receive until a newline; anything after the first newline is dropped."""
    buf = bytearray()
    while b"\n" not in buf:
        chunk = sock.recv(_RECV_SIZE)
        if not chunk:
            raise EOFError("pipe closed before a complete envelope was received")
        buf += chunk
    line, _, _ = bytes(buf).partition(b"\n")
    return line + b"\n"


def _receive(sock: socket.socket, results: queue.Queue) -> None:
    try:
        results.put((_read_line(sock), None))
    except (OSError, EOFError) as e:
        results.put((None, e))


def read_envelope(
    sock: socket.socket, timeout: float = HANDSHAKE_TIMEOUT
) -> HandshakeEnvelope:
    """
    Read one envelope, giving up after ``timeout`` seconds.

    The blocking receive runs on a daemon thread and reports through a queue.
    If the deadline passes first, the reader is abandoned and whatever it
    produces later is never looked at. It stays blocked on ``sock`` until
    data arrives, so do not read the same pipe again after a timeout.

    Raises:
        InvocationTimeoutError: Nothing arrived in time
        HandshakeReceiveError: The pipe failed or closed early
        EnvelopeParseError: The line was not a valid envelope
    """
    results: queue.Queue = queue.Queue(maxsize=1)
    reader = threading.Thread(
        target=_receive,
        args=(sock, results),
        daemon=True,
        name="handshake-reader",
    )
    reader.start()

    try:
        line, error = results.get(timeout=timeout)
    except queue.Empty:
        logger.debug(f"no handshake data after {timeout}s, abandoning reader")
        raise InvocationTimeoutError(timeout) from None

    if error is not None:
        raise HandshakeReceiveError(error) from error

    envelope = parse_envelope(line)
    logger.debug(
        "received handshake envelope",
        extra={"data": envelope.data, "diagnostic": envelope.message},
    )
    return envelope


def read_sync_data(
    sock: socket.socket,
    timeout: float = HANDSHAKE_TIMEOUT,
    full_output: bool = True,
) -> int:
    """
    Read and decode one envelope from a handshake pipe.

    After an InvocationTimeoutError the pipe is spent: the reader left behind
    by read_envelope() takes the next envelope, so reading again does not
    recover a result that arrives late.

    Args:
        sock: Parent-held end of the pipe
        timeout: Seconds to wait for the envelope
        full_output: Passed to classify_runtime_error

    Returns:
        The non-negative result value

    Raises:
        HandshakeError: Timeout, transport or parse failure, or a negative
            result without a message
        OCIRuntimeError: Negative result with a classified message
    """
    return decode_envelope(read_envelope(sock, timeout), full_output=full_output)
