"""
Secure Sender - Encrypted session over one stream socket.

A Session owns the socket, one stream cipher per direction and the receive
buffer. Packets are framed by the protocol codec and encrypted with the
stream cipher once the session is secured.

The first packet each side writes is its Acknowledge, which is sent in the
clear because no key exists yet. Any bytes that arrive behind the peer's
Acknowledge are ciphertext; they are decrypted once, when secure() keys the
inbound cipher, and every later chunk is decrypted as it is appended.
"""

import logging
import socket
from typing import Optional, Tuple

from .cipher import StreamCipher
from .connection_fsm import SessionEvent, SessionState, SessionStateMachine
from .constants import CONNECT_TIMEOUT, RECV_CHUNK_SIZE, SEND_TIMEOUT
from .errors import ErrorCode, NetworkError, ProtocolError
from .key_exchange import int_to_key_bytes, key_fingerprint
from .protocol import Packet, Protocol

logger = logging.getLogger(__name__)


class Session:
    """
    One connection with its ciphers and receive buffer.

    Attributes:
        sock: Non-blocking stream socket
        address: Peer address, if known
        cipher_out: Cipher for outgoing packets
        cipher_in: Cipher for incoming packets
        buffer: Received bytes that have not yet been deframed
        fsm: Session state machine
        peer_closed: True once the peer has closed its end of the stream
        recv_error: Socket error that stopped reading, if any
        key_fingerprint: SHA-256 fingerprint of the session key, once secured
    """

    def __init__(self, sock: socket.socket, address: Optional[Tuple] = None):
        self.sock = sock
        self.address = address
        self.cipher_out = StreamCipher()
        self.cipher_in = StreamCipher()
        self.buffer = bytearray()
        self.fsm = SessionStateMachine()
        self.peer_closed = False
        self.recv_error: Optional[OSError] = None
        self.key_fingerprint: Optional[str] = None
        self.bytes_sent = 0
        self.bytes_received = 0

    @classmethod
    def from_socket(cls, sock: socket.socket, address: Optional[Tuple] = None) -> "Session":
        """Create a session from a connected socket."""
        sock.setblocking(False)
        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError as e:
            # Not every stream socket is TCP
            logger.debug(f"TCP_NODELAY not set: {e}")
        return cls(sock, address)

    @classmethod
    def from_address(cls, address: Tuple[str, int], timeout: float = CONNECT_TIMEOUT) -> "Session":
        """
        Dial ``address`` and create a session.

        Raises:
            NetworkError: If the connection cannot be established
        """
        try:
            sock = socket.create_connection(address, timeout=timeout)
        except OSError as e:
            raise NetworkError(
                ErrorCode.E201_CONNECTION_FAILED,
                f"Failed to connect to {address[0]}:{address[1]}: {e}",
                {"host": address[0], "port": address[1], "error": str(e)},
            ) from e
        return cls.from_socket(sock, address)

    @property
    def state(self) -> SessionState:
        return self.fsm.current_state

    def read(self) -> Optional[Packet]:
        """
        Read available bytes and decode at most one packet.

        Returns:
            The next packet, or None if no whole packet is buffered

        Raises:
            ProtocolError: If the buffered bytes cannot be decoded. When the
                bad packet's length is known its bytes are discarded first.
            NetworkError: If the socket failed and no whole packet is left
                in the buffer
        """
        self._fill()

        packet = self._next_packet()
        if packet is None and self.recv_error is not None:
            error = self.recv_error
            raise NetworkError(
                ErrorCode.E205_RECEIVE_FAILED,
                f"Receive failed: {error}",
                {"error": str(error), "buffered": len(self.buffer)},
            ) from error
        return packet

    def _next_packet(self) -> Optional[Packet]:
        if not self.buffer:
            return None

        try:
            result = Protocol.try_deserialize(self.buffer)
        except ProtocolError as e:
            if e.consumed:
                del self.buffer[: e.consumed]
            raise

        if result is None:
            return None

        packet, consumed = result
        del self.buffer[:consumed]
        return packet

    def _fill(self) -> None:
        """
        Append everything the socket has ready, decrypting each new chunk once.

        A socket error stops reading but is only reported by read() after
        the packets already buffered have been handed out.
        """
        secured = self.fsm.is_secured()
        while not self.peer_closed and self.recv_error is None:
            try:
                data = self.sock.recv(RECV_CHUNK_SIZE)
            except (BlockingIOError, InterruptedError):
                break
            except OSError as e:
                logger.debug(f"Receive failed with {len(self.buffer)} bytes buffered: {e}")
                self.recv_error = e
                break

            if not data:
                self.peer_closed = True
                break

            chunk = bytearray(data)
            if secured:
                self.cipher_in.process(chunk)
            self.buffer += chunk
            self.bytes_received += len(chunk)
            logger.debug(f"Received {len(chunk)} bytes")

    def write(self, packet: Packet) -> None:
        """
        Serialize, encrypt and send one packet.

        Raises:
            ProtocolError: If the packet cannot be serialized
            NetworkError: If the write fails; the session is then unusable
        """
        if self.fsm.is_closed():
            raise NetworkError(ErrorCode.E204_SEND_FAILED, "Send failed: session is closed")

        scratch = bytearray()
        Protocol.serialize_into(packet, scratch)

        if self.fsm.is_secured():
            self.cipher_out.process(scratch)

        try:
            self.sock.settimeout(SEND_TIMEOUT)
            self.sock.sendall(scratch)
        except OSError as e:
            self.fsm.transition(SessionEvent.ERROR_OCCURRED, str(e))
            raise NetworkError(
                ErrorCode.E204_SEND_FAILED,
                f"Send failed: {e}",
                {"error": str(e)},
            ) from e
        finally:
            if self.sock.fileno() != -1:
                self.sock.setblocking(False)

        self.bytes_sent += len(scratch)
        logger.debug(f"Sent {len(scratch)} bytes")

    def secure(self, shared_secret: int) -> str:
        """
        Key both ciphers from the shared secret.

        Args:
            shared_secret: Result of the key agreement

        Returns:
            Fingerprint of the session key

        Raises:
            NetworkError: If the session is not awaiting its handshake
        """
        if self.fsm.current_state != SessionState.UNSECURED:
            raise NetworkError(
                ErrorCode.E209_HANDSHAKE_FAILED,
                f"Cannot secure session in state {self.fsm.current_state.name}",
            )

        key = int_to_key_bytes(shared_secret)
        self.cipher_out.initialize(key)
        self.cipher_in.initialize(key)
        self.key_fingerprint = key_fingerprint(key)

        if self.buffer:
            self.cipher_in.process(self.buffer)

        self.fsm.transition(SessionEvent.KEYS_EXCHANGED)
        return self.key_fingerprint

    def close(self) -> None:
        """Close the socket and discard buffered bytes."""
        self.fsm.transition(SessionEvent.CLOSE_REQUESTED)
        if self.buffer:
            logger.debug(f"Discarding {len(self.buffer)} undecoded bytes")
        self.buffer.clear()
        try:
            self.sock.close()
        except OSError as e:
            logger.debug(f"Error closing socket: {e}")

        ending = f" after error: {self.fsm.error_message}" if self.fsm.error_message else ""
        logger.info(
            f"Session with {self.address} closed{ending} "
            f"({self.bytes_sent} bytes sent, {self.bytes_received} bytes received)"
        )

    def __repr__(self) -> str:
        return f"Session(address={self.address}, state={self.fsm.current_state.name})"
