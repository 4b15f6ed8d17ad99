"""
Secure Sender - Poll-driven peer with a single active session.

Created for Secure Sender

This module implements:
- A non-blocking listener that accepts at most one session at a time
- Outbound connections to a peer address
- The Acknowledge handshake that keys both stream ciphers
- Event delivery to the presentation layer through poll()

Everything runs on the caller's thread. A driving loop calls
accept_if_idle(), then poll() until it returns None, then yields.
"""

import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from .connection_fsm import SessionEvent
from .constants import DEFAULT_HOST, DEFAULT_SERVER_PORT
from .errors import ErrorCode, NetworkError, ProtocolError
from .key_exchange import KeyExchange
from .protocol import Acknowledge, Leave, Message
from .session import Session
from .utils import Address, format_fingerprint, parse_address

logger = logging.getLogger(__name__)


class PeerStatus(Enum):
    """Connection status shown to the user."""

    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class HandshakeCompleted:
    """Keys have been exchanged; messages may now be sent."""

    fingerprint: str


@dataclass(frozen=True)
class MessageReceived:
    """A text message arrived from the peer."""

    text: str


@dataclass(frozen=True)
class PeerLeft:
    """The session ended from the peer's side and has been released."""

    reason: str = "leave"


Event = Union[HandshakeCompleted, MessageReceived, PeerLeft]


class Peer:
    """
    One endpoint of a Secure Sender conversation.

    Listens for an inbound connection and can dial out; whichever side
    establishes the socket, both send an Acknowledge and the roles are
    identical from then on.

    Attributes:
        key_exchange: Key agreement state, kept for the process lifetime
        session: The active session, if any
        host: Bound listener host
        port: Bound listener port
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_SERVER_PORT,
        key_exchange: Optional[KeyExchange] = None,
    ):
        self.key_exchange = key_exchange or KeyExchange()
        self.session: Optional[Session] = None
        self.server = self._bind(host, port)
        self.host, self.port = self.server.getsockname()[:2]
        logger.info(f"Listening on {self.host}:{self.port}")

    @staticmethod
    def _bind(host: str, port: int) -> socket.socket:
        try:
            server = socket.create_server((host, port))
            server.setblocking(False)
        except OSError as e:
            raise NetworkError(
                ErrorCode.E201_CONNECTION_FAILED,
                f"Could not bind to {host}:{port}: {e}",
                {"host": host, "port": port, "error": str(e)},
            ) from e
        return server

    @property
    def status(self) -> PeerStatus:
        return PeerStatus.ACTIVE if self.session is not None else PeerStatus.INACTIVE

    @property
    def is_secured(self) -> bool:
        return self.session is not None and self.session.fsm.is_secured()

    def _set_session(self, session: Session) -> None:
        """Install ``session`` and send our Acknowledge."""
        public_value = self.key_exchange.start_session()
        try:
            session.write(Acknowledge(public_value))
        except NetworkError:
            session.close()
            raise
        self.session = session

    def _release(self, event: SessionEvent, error_msg: Optional[str] = None) -> None:
        session, self.session = self.session, None
        if session is None:
            return
        session.fsm.transition(event, error_msg)
        session.close()

    def _reject_pending(self) -> None:
        """Close inbound connections that arrive while a session is active."""
        while True:
            try:
                sock, address = self.server.accept()
            except (BlockingIOError, InterruptedError):
                return
            except OSError as e:
                logger.warning(f"Accept failed: {e}")
                return
            logger.info(f"Rejected connection from {address}: session already active")
            sock.close()

    def accept_if_idle(self) -> bool:
        """
        Accept one inbound connection if no session is active.

        Returns:
            True if a new session was established
        """
        if self.session is not None:
            self._reject_pending()
            return False

        try:
            sock, address = self.server.accept()
        except (BlockingIOError, InterruptedError):
            return False
        except OSError as e:
            logger.warning(f"Accept failed: {e}")
            return False

        try:
            self._set_session(Session.from_socket(sock, address))
        except (NetworkError, OSError) as e:
            logger.warning(f"Could not start session with {address}: {e}")
            sock.close()
            return False

        logger.info(f"Receiving from {address[0]}:{address[1]}")
        return True

    def connect(self, address: Address) -> None:
        """
        Connect to a peer and send our Acknowledge.

        Args:
            address: ``"host:port"`` or ``(host, port)``

        Raises:
            NetworkError: If a session is already active or the connection fails
        """
        if self.session is not None:
            raise NetworkError(
                ErrorCode.E210_SESSION_ACTIVE,
                "A session is already active; disconnect first",
            )

        host, port = parse_address(address)
        logger.info(f"Connecting to {host}:{port}")
        self._set_session(Session.from_address((host, port)))
        logger.info(f"Connected to {host}:{port}")

    def disconnect(self) -> None:
        """Send Leave to the peer, if connected, and release the session."""
        session = self.session
        if session is None:
            return

        try:
            session.write(Leave())
        except NetworkError as e:
            logger.warning(f"Could not send leave: {e}")
        self._release(SessionEvent.CLOSE_REQUESTED)
        logger.info("Disconnected")

    def send(self, text: str) -> None:
        """
        Send a text message on the active, secured session.

        Raises:
            NetworkError: If there is no secured session or the write fails.
                A failed write releases the session.
            ProtocolError: If the message is too large; the session is kept
        """
        session = self.session
        if session is None:
            raise NetworkError(ErrorCode.E211_NOT_CONNECTED, "No active session")
        if not session.fsm.is_secured():
            raise NetworkError(
                ErrorCode.E212_NOT_SECURED, "Keys have not been exchanged yet"
            )

        try:
            session.write(Message(text))
        except ProtocolError:
            raise
        except NetworkError as e:
            logger.error(f"Send failed, dropping session: {e}")
            self._release(SessionEvent.ERROR_OCCURRED, str(e))
            raise

    def poll(self) -> Optional[Event]:
        """
        Process at most one incoming packet.

        Returns:
            An event, or None if nothing is ready
        """
        while self.session is not None:
            session = self.session

            try:
                packet = session.read()
            except ProtocolError as e:
                if e.consumed:
                    logger.warning(f"Discarded undecodable message: {e.message}")
                    continue
                logger.warning(f"Dropping session after decode failure: {e.message}")
                self._release(SessionEvent.ERROR_OCCURRED, e.message)
                return PeerLeft("protocol_error")
            except NetworkError as e:
                logger.warning(f"Connection lost: {e.message}")
                self._release(SessionEvent.ERROR_OCCURRED, e.message)
                return PeerLeft("connection_lost")

            if packet is None:
                if session.peer_closed:
                    logger.info("The recipient closed the connection")
                    self._release(SessionEvent.PEER_LEFT)
                    return PeerLeft("closed")
                return None

            if isinstance(packet, Acknowledge):
                if session.fsm.is_secured():
                    logger.warning("Ignoring repeated acknowledge on a secured session")
                    continue
                shared = self.key_exchange.compute_shared(packet.public_value)
                fingerprint = session.secure(shared)
                logger.info(f"Keys have been exchanged (fingerprint {format_fingerprint(fingerprint[:16])})")
                return HandshakeCompleted(fingerprint)

            elif isinstance(packet, Message):
                if not session.fsm.is_secured():
                    logger.warning("Ignoring message received before key exchange")
                    continue
                return MessageReceived(packet.text)

            elif isinstance(packet, Leave):
                logger.info("The recipient has disconnected")
                self._release(SessionEvent.PEER_LEFT)
                return PeerLeft()

        return None

    def poll_all(self) -> List[Event]:
        """Drain every event that is ready."""
        events = []
        while True:
            event = self.poll()
            if event is None:
                return events
            events.append(event)
            if isinstance(event, PeerLeft):
                return events

    def close(self) -> None:
        """Disconnect and stop listening."""
        self.disconnect()
        try:
            self.server.close()
        except OSError as e:
            logger.debug(f"Error closing listener: {e}")

    def __enter__(self) -> "Peer":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
