"""
Secure Sender - Packet protocol definitions.

This module defines the wire format for session traffic. Every packet is a
one-byte discriminant followed by a kind-specific payload:

- Acknowledge (0): 128-byte little-endian public value
- Message (1): 8-byte little-endian length, then that many UTF-8 bytes
- Leave (2): no payload

The length field is a fixed u64 so that peers on different architectures
agree on the layout.
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple, Union

from .constants import (
    DISCRIMINANT_SIZE,
    KEY_BYTES,
    LENGTH_FIELD_FORMAT,
    LENGTH_FIELD_SIZE,
    MAX_TEXT_MESSAGE_SIZE,
)
from .errors import CryptoError, ErrorCode, ProtocolError
from .key_exchange import int_to_key_bytes, key_bytes_to_int


class PacketType(IntEnum):
    """Packet discriminant values."""

    ACKNOWLEDGE = 0
    MESSAGE = 1
    LEAVE = 2


@dataclass(frozen=True)
class Acknowledge:
    """Handshake packet carrying a key agreement public value."""

    public_value: int


@dataclass(frozen=True)
class Message:
    """Text message sent to the peer."""

    text: str


@dataclass(frozen=True)
class Leave:
    """Indicates that the sender is leaving the session."""


Packet = Union[Acknowledge, Message, Leave]


class Protocol:
    """Packet codec."""

    @staticmethod
    def packet_type(packet: Packet) -> PacketType:
        """Return the discriminant for ``packet``."""
        if isinstance(packet, Acknowledge):
            return PacketType.ACKNOWLEDGE
        elif isinstance(packet, Message):
            return PacketType.MESSAGE
        elif isinstance(packet, Leave):
            return PacketType.LEAVE
        raise TypeError(f"Not a packet: {packet!r}")

    @staticmethod
    def serialize_into(packet: Packet, sink: bytearray) -> int:
        """
        Append the wire form of ``packet`` to ``sink``.

        Returns:
            Number of bytes written

        Raises:
            ProtocolError: If a message is too large or a public value
                does not fit in 1024 bits
        """
        start = len(sink)
        packet_type = Protocol.packet_type(packet)
        sink.append(int(packet_type))

        if packet_type == PacketType.ACKNOWLEDGE:
            try:
                sink += int_to_key_bytes(packet.public_value)
            except CryptoError as e:
                del sink[start:]
                raise ProtocolError(
                    ErrorCode.E206_INVALID_MESSAGE, f"Invalid public value: {e.message}"
                ) from e
        elif packet_type == PacketType.MESSAGE:
            data = packet.text.encode("utf-8")
            if len(data) > MAX_TEXT_MESSAGE_SIZE:
                del sink[start:]
                raise ProtocolError(
                    ErrorCode.E207_MESSAGE_TOO_LARGE,
                    f"Text message too large: {len(data)} > {MAX_TEXT_MESSAGE_SIZE}",
                    {"size": len(data), "max_size": MAX_TEXT_MESSAGE_SIZE},
                )
            sink += struct.pack(LENGTH_FIELD_FORMAT, len(data))
            sink += data

        return len(sink) - start

    @staticmethod
    def serialize(packet: Packet) -> bytes:
        """Return the wire form of ``packet``."""
        sink = bytearray()
        Protocol.serialize_into(packet, sink)
        return bytes(sink)

    @staticmethod
    def try_deserialize(source: Union[bytes, bytearray, memoryview]) -> Optional[Tuple[Packet, int]]:
        """
        Decode one packet from the front of ``source``.

        ``source`` is never modified. When the buffered bytes do not yet hold
        a whole packet, None is returned and the call may be repeated once
        more bytes arrive.

        Returns:
        - Decoded packet
        - Total bytes consumed (discriminant + payload)

        Raises:
            ProtocolError: If the discriminant is unknown, the declared
                length is too large, or a message is not valid UTF-8
        """
        if len(source) < DISCRIMINANT_SIZE:
            return None

        discriminant = source[0]
        offset = DISCRIMINANT_SIZE

        if discriminant == PacketType.ACKNOWLEDGE:
            end = offset + KEY_BYTES
            if len(source) < end:
                return None
            public_value = key_bytes_to_int(bytes(source[offset:end]))
            return Acknowledge(public_value), end

        elif discriminant == PacketType.MESSAGE:
            if len(source) < offset + LENGTH_FIELD_SIZE:
                return None
            (length,) = struct.unpack_from(LENGTH_FIELD_FORMAT, source, offset)
            if length > MAX_TEXT_MESSAGE_SIZE:
                raise ProtocolError(
                    ErrorCode.E207_MESSAGE_TOO_LARGE,
                    f"Declared message length too large: {length}",
                    {"size": length, "max_size": MAX_TEXT_MESSAGE_SIZE},
                )
            offset += LENGTH_FIELD_SIZE
            end = offset + length
            if len(source) < end:
                return None
            try:
                text = bytes(source[offset:end]).decode("utf-8")
            except UnicodeDecodeError as e:
                raise ProtocolError(
                    ErrorCode.E206_INVALID_MESSAGE,
                    f"Message is not valid UTF-8: {e}",
                    {"consumed": end, "error": str(e)},
                ) from e
            return Message(text), end

        elif discriminant == PacketType.LEAVE:
            return Leave(), offset

        raise ProtocolError(
            ErrorCode.E206_INVALID_MESSAGE,
            f"Invalid packet type: {discriminant}",
            {"type": discriminant},
        )

    @staticmethod
    def create_acknowledge(public_value: int) -> bytes:
        """Create acknowledge packet."""
        return Protocol.serialize(Acknowledge(public_value))

    @staticmethod
    def create_message(text: str) -> bytes:
        """Create text message packet."""
        return Protocol.serialize(Message(text))

    @staticmethod
    def create_leave() -> bytes:
        """Create leave packet."""
        return Protocol.serialize(Leave())
