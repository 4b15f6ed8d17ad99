"""
Secure Sender - Direct two-party encrypted messaging

Establishes an encrypted session over a raw TCP stream without any
pre-shared secret, using a Diffie-Hellman style key agreement and an
RC4 stream cipher per direction, then exchanges framed text messages.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .cipher import StreamCipher
from .constants import APP_NAME, VERSION
from .errors import (
    ConfigError,
    CryptoError,
    ErrorCode,
    NetworkError,
    ProtocolError,
    SecureSenderError,
)
from .key_exchange import KeyExchange
from .network import Event, HandshakeCompleted, MessageReceived, Peer, PeerLeft, PeerStatus
from .protocol import Acknowledge, Leave, Message, Packet, PacketType, Protocol
from .session import Session

__all__ = [
    "APP_NAME",
    "VERSION",
    "Acknowledge",
    "ConfigError",
    "CryptoError",
    "ErrorCode",
    "Event",
    "HandshakeCompleted",
    "KeyExchange",
    "Leave",
    "Message",
    "MessageReceived",
    "NetworkError",
    "Packet",
    "PacketType",
    "Peer",
    "PeerLeft",
    "PeerStatus",
    "Protocol",
    "ProtocolError",
    "SecureSenderError",
    "Session",
    "StreamCipher",
    "__license__",
    "__version__",
]
