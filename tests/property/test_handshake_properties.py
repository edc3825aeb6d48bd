"""Property-based tests for handshake envelope decoding."""

import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from conmon_runner.exceptions import (
    EnvelopeParseError,
    ErrorCategory,
    InternalInvocationError,
    OCIRuntimeError,
)
from conmon_runner.handshake import (
    HandshakeEnvelope,
    classify_runtime_error,
    decode_envelope,
    parse_envelope,
)


def encode(payload: dict) -> bytes:
    return (json.dumps(payload) + "\n").encode()


@pytest.mark.property
@pytest.mark.unit
class TestEnvelopeProperties:
    """Property-based tests for parse_envelope() and decode_envelope()."""

    @given(data=st.integers(min_value=0, max_value=2**31), message=st.text())
    def test_non_negative_is_success(self, data: int, message: str) -> None:
        """Non-negative data is returned whatever the message says."""
        envelope = parse_envelope(encode({"data": data, "message": message}))
        assert envelope == HandshakeEnvelope(data, message)
        assert decode_envelope(envelope) == data

    @given(data=st.integers(max_value=-1, min_value=-(2**31)))
    def test_negative_without_message_is_internal(self, data: int) -> None:
        """Negative data without a message is always an internal failure."""
        with pytest.raises(InternalInvocationError) as exc_info:
            decode_envelope(parse_envelope(encode({"data": data})))
        assert exc_info.value.data == data

    @given(
        data=st.integers(max_value=-1, min_value=-(2**31)),
        message=st.text(min_size=1),
    )
    def test_negative_with_message_is_classified(self, data: int, message: str) -> None:
        """Negative data with a message always yields a classified error."""
        with pytest.raises(OCIRuntimeError) as exc_info:
            decode_envelope(HandshakeEnvelope(data, message))
        error = exc_info.value
        assert error.data == data
        assert error.category in {
            ErrorCategory.RUNTIME,
            ErrorCategory.PERMISSION_DENIED,
            ErrorCategory.NOT_FOUND,
        }

    @given(message=st.text(), full_output=st.booleans())
    def test_classification_detail_is_from_message(
        self, message: str, full_output: bool
    ) -> None:
        """The detail is always taken from the message text."""
        error = classify_runtime_error(message, full_output=full_output)
        assert error.detail in message
        assert not error.detail.startswith("\n")
        assert not error.detail.endswith("\n")

    @given(raw=st.binary(max_size=100))
    @settings(max_examples=200)
    def test_arbitrary_bytes_doesnt_crash(self, raw: bytes) -> None:
        """Any input either parses or raises EnvelopeParseError."""
        try:
            envelope = parse_envelope(raw)
            assert isinstance(envelope.data, int)
            assert isinstance(envelope.message, str)
        except EnvelopeParseError:
            pass
