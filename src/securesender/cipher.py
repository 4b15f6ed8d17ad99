"""
Secure Sender - Stream cipher.

This module implements the RC4 keystream generator used to encrypt session
traffic. The first CIPHER_DROP_BYTES bytes of keystream are discarded after
key scheduling, since the early output of RC4 is known to be biased.

Encryption and decryption are the same operation: data is XORed with the
keystream. A session therefore keeps one instance per direction, because each
peer's generator only advances on the traffic it handles.
"""

import logging
from typing import Union

from .constants import CIPHER_DROP_BYTES, CIPHER_STATE_SIZE, MAX_CIPHER_KEY_SIZE
from .errors import CryptoError, ErrorCode

logger = logging.getLogger(__name__)

Buffer = Union[bytearray, memoryview]


class StreamCipher:
    """RC4 keystream generator with a fixed-length initial drop."""

    def __init__(self):
        self.state = bytearray(CIPHER_STATE_SIZE)
        self.i = 0
        self.j = 0
        self.initialized = False

    def initialize(self, key: bytes) -> None:
        """
        Build the permutation from ``key`` and discard the early keystream.

        Args:
            key: Key bytes, 1 to 256 bytes long

        Raises:
            CryptoError: If the key is empty or too long
        """
        if not key or len(key) > MAX_CIPHER_KEY_SIZE:
            raise CryptoError(
                ErrorCode.E103_INVALID_KEY,
                f"Invalid cipher key length: {len(key) if key else 0}",
                {"length": len(key) if key else 0, "max_length": MAX_CIPHER_KEY_SIZE},
            )

        state = bytearray(range(CIPHER_STATE_SIZE))
        key_length = len(key)
        j = 0

        for i in range(CIPHER_STATE_SIZE):
            j = (j + state[i] + key[i % key_length]) & 0xFF
            state[i], state[j] = state[j], state[i]

        self.state = state
        self.i = 0
        self.j = 0
        self.initialized = True

        for _ in range(CIPHER_DROP_BYTES):
            self._next()

        logger.debug(f"Stream cipher keyed with {key_length}-byte key, dropped {CIPHER_DROP_BYTES} bytes")

    def _next(self) -> int:
        state = self.state
        self.i = (self.i + 1) & 0xFF
        self.j = (self.j + state[self.i]) & 0xFF
        state[self.i], state[self.j] = state[self.j], state[self.i]
        return state[(state[self.i] + state[self.j]) & 0xFF]

    def process(self, buffer: Buffer) -> Buffer:
        """
        XOR ``buffer`` in place with the next keystream bytes.

        Args:
            buffer: Mutable buffer to encrypt or decrypt

        Returns:
            The same buffer, for convenience

        Raises:
            CryptoError: If the cipher has not been initialized
        """
        self._check_initialized()
        for index in range(len(buffer)):
            buffer[index] ^= self._next()
        return buffer

    def keystream(self, length: int) -> bytes:
        """Generate the next ``length`` keystream bytes."""
        self._check_initialized()
        return bytes(self._next() for _ in range(length))

    def _check_initialized(self) -> None:
        if not self.initialized:
            raise CryptoError(
                ErrorCode.E103_INVALID_KEY,
                "Stream cipher used before initialization",
            )

    def __repr__(self) -> str:
        return f"StreamCipher(initialized={self.initialized})"
