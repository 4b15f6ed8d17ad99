"""
Secure Sender - Packet protocol tests.

Tests packet serialization, incremental decoding and decode failures.
"""

import struct

import pytest

from securesender.constants import KEY_BYTES, LARGE_SHARED_PRIME, MAX_TEXT_MESSAGE_SIZE
from securesender.errors import ErrorCode, ProtocolError
from securesender.protocol import Acknowledge, Leave, Message, PacketType, Protocol


PACKETS = [
    Acknowledge(0),
    Acknowledge(LARGE_SHARED_PRIME - 1),
    Acknowledge(2**1024 - 1),
    Message(""),
    Message("x"),
    Message("Hello, World!"),
    Message("unicode: 你好 ✓ 🔒"),
    Message("a" * 65535),
    Leave(),
]


@pytest.mark.parametrize("packet", PACKETS)
def test_round_trip(packet):
    """Test that every packet decodes to itself and consumes all bytes."""
    data = Protocol.serialize(packet)

    decoded, consumed = Protocol.try_deserialize(data)

    assert decoded == packet
    assert consumed == len(data)


def test_acknowledge_layout():
    """Test the acknowledge wire layout."""
    data = Protocol.create_acknowledge(0x0102)

    assert len(data) == 1 + KEY_BYTES
    assert data[0] == PacketType.ACKNOWLEDGE
    assert data[1:3] == b"\x02\x01"


def test_message_layout():
    """Test the message wire layout with a u64 little-endian length."""
    data = Protocol.create_message("hi")

    assert data == b"\x01" + struct.pack("<Q", 2) + b"hi"


def test_leave_layout():
    """Test that leave is a bare discriminant."""
    assert Protocol.create_leave() == b"\x02"


def test_serialize_into_appends():
    """Test that serialize_into appends to an existing buffer."""
    sink = bytearray(b"prefix")

    written = Protocol.serialize_into(Leave(), sink)

    assert written == 1
    assert sink == b"prefix\x02"


@pytest.mark.parametrize("packet", [Acknowledge(42), Message("partial"), Message("")])
def test_incomplete_returns_none(packet):
    """Test that every strict prefix reports not-yet-available."""
    data = Protocol.serialize(packet)

    for end in range(len(data)):
        assert Protocol.try_deserialize(data[:end]) is None


def test_source_not_modified():
    """Test that decoding never consumes from the source."""
    buffer = bytearray(Protocol.create_message("keep") + Protocol.create_leave())
    original = bytes(buffer)

    packet, consumed = Protocol.try_deserialize(buffer)

    assert packet == Message("keep")
    assert buffer == original
    assert Protocol.try_deserialize(buffer[consumed:]) == (Leave(), 1)


def test_only_first_packet_decoded():
    """Test that trailing packets are left for later calls."""
    data = Protocol.create_leave() + Protocol.create_message("next")

    assert Protocol.try_deserialize(data) == (Leave(), 1)


def test_unknown_discriminant():
    """Test that an unknown packet type is a decode failure."""
    with pytest.raises(ProtocolError) as exc_info:
        Protocol.try_deserialize(b"\x07rest")

    assert exc_info.value.code == ErrorCode.E206_INVALID_MESSAGE
    assert exc_info.value.consumed is None


def test_invalid_utf8_reports_consumed():
    """Test that invalid UTF-8 fails only that packet."""
    bad = b"\x01" + struct.pack("<Q", 2) + b"\xff\xfe"
    data = bad + Protocol.create_leave()

    with pytest.raises(ProtocolError) as exc_info:
        Protocol.try_deserialize(data)

    assert exc_info.value.consumed == len(bad)
    assert Protocol.try_deserialize(data[len(bad) :]) == (Leave(), 1)


def test_declared_length_too_large():
    """Test that absurd lengths are rejected before buffering the payload."""
    data = b"\x01" + struct.pack("<Q", MAX_TEXT_MESSAGE_SIZE + 1)

    with pytest.raises(ProtocolError) as exc_info:
        Protocol.try_deserialize(data)

    assert exc_info.value.code == ErrorCode.E207_MESSAGE_TOO_LARGE


def test_serialize_message_too_large():
    """Test that oversized messages are not serialized."""
    sink = bytearray(b"keep")

    with pytest.raises(ProtocolError) as exc_info:
        Protocol.serialize_into(Message("x" * (MAX_TEXT_MESSAGE_SIZE + 1)), sink)

    assert exc_info.value.code == ErrorCode.E207_MESSAGE_TOO_LARGE
    assert sink == b"keep"


def test_serialize_acknowledge_out_of_range():
    """Test that public values wider than 1024 bits are rejected."""
    with pytest.raises(ProtocolError):
        Protocol.serialize(Acknowledge(2**1024))


def test_serialize_rejects_non_packet():
    """Test that only the three packet kinds serialize."""
    with pytest.raises(TypeError):
        Protocol.serialize("not a packet")
