"""
Secure Sender - Custom Exception Classes and Error Codes

This module defines all custom exceptions and error codes used throughout
Secure Sender. Each error has a unique code for logging and debugging.

Author: Secure Sender contributors
Version: 1.0.0
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Enumeration of all Secure Sender error codes."""

    # General Errors (E001-E099)
    E001_UNKNOWN_ERROR = "E001"
    E002_INVALID_ARGUMENT = "E002"

    # Crypto Errors (E100-E199)
    E100_CRYPTO_ERROR = "E100"
    E103_INVALID_KEY = "E103"
    E104_KEY_GENERATION_FAILED = "E104"

    # Network Errors (E200-E299)
    E200_NETWORK_ERROR = "E200"
    E201_CONNECTION_FAILED = "E201"
    E204_SEND_FAILED = "E204"
    E205_RECEIVE_FAILED = "E205"
    E206_INVALID_MESSAGE = "E206"
    E207_MESSAGE_TOO_LARGE = "E207"
    E209_HANDSHAKE_FAILED = "E209"
    E210_SESSION_ACTIVE = "E210"
    E211_NOT_CONNECTED = "E211"
    E212_NOT_SECURED = "E212"

    # Config Errors (E700-E799)
    E700_CONFIG_ERROR = "E700"
    E702_CONFIG_SAVE_FAILED = "E702"
    E704_CONFIG_PARSE_ERROR = "E704"


class SecureSenderError(Exception):
    """Base exception class for all Secure Sender errors.

    Attributes:
        code: Error code from ErrorCode enum
        message: Human-readable error message
        details: Additional error details (optional)
    """

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {"code": self.code.value, "message": self.message, "details": self.details}


class CryptoError(SecureSenderError):
    """Exception raised for key agreement and stream cipher failures."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E100_CRYPTO_ERROR,
        message: str = "Cryptographic operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class NetworkError(SecureSenderError):
    """Exception raised for network operation failures.

    This includes bind, accept and connect errors, send failures,
    and misuse of a session in the wrong phase.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E200_NETWORK_ERROR,
        message: str = "Network operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class ProtocolError(NetworkError):
    """Exception raised when received bytes cannot be decoded as a packet.

    When the packet boundary is known (e.g. a Message with invalid UTF-8)
    ``details["consumed"]`` holds the number of bytes the bad packet spans.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E206_INVALID_MESSAGE,
        message: str = "Invalid packet",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)

    @property
    def consumed(self) -> Optional[int]:
        """Byte length of the undecodable packet, if it is known."""
        return self.details.get("consumed")


class ConfigError(SecureSenderError):
    """Exception raised for configuration failures.

    This includes loading, parsing, and validating configuration files.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E700_CONFIG_ERROR,
        message: str = "Configuration operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)
