"""
Secure Sender - Key agreement.

This module implements a Diffie-Hellman style agreement over a fixed prime
field. Each peer holds a long-term secret exponent, generated once, and an
ephemeral exponent that is regenerated for every session. The value sent to
the peer is ``g^(long_term + ephemeral) mod p``.

The exchange is unauthenticated: nothing binds a public value to the peer
that sent it, so an active attacker on the first exchange can mount a
man-in-the-middle. There is also no key confirmation step; mismatched keys
only show up as undecodable traffic.
"""

import logging
import secrets
from typing import Optional

from cryptography.hazmat.primitives import hashes

from .constants import GENERATOR, KEY_BITS, KEY_BYTES, LARGE_SHARED_PRIME
from .errors import CryptoError, ErrorCode

logger = logging.getLogger(__name__)


def modular_exponentiation(base: int, exponent: int, modulus: int) -> int:
    """
    Compute ``base^exponent mod modulus`` by square-and-multiply.

    Exponent bits are scanned from least to most significant, and every
    product is reduced immediately.
    """
    result = 1
    base %= modulus

    while exponent:
        if exponent & 1:
            result = (result * base) % modulus
        base = (base * base) % modulus
        exponent >>= 1

    return result


def fixed_exponentiation(base: int, exponent: int) -> int:
    """Modular exponentiation in the shared prime field."""
    return modular_exponentiation(base, exponent, LARGE_SHARED_PRIME)


def random_u1024() -> int:
    """Pull a uniformly random 1024-bit value from the system CSPRNG."""
    return int.from_bytes(secrets.token_bytes(KEY_BYTES), "little")


def random_field_element() -> int:
    """Pull a random 1024-bit value and reduce it modulo the shared prime."""
    return random_u1024() % LARGE_SHARED_PRIME


def int_to_key_bytes(value: int) -> bytes:
    """
    Encode a 1024-bit value as 128 little-endian bytes.

    Raises:
        CryptoError: If the value does not fit in 1024 bits
    """
    if value < 0 or value.bit_length() > KEY_BITS:
        raise CryptoError(
            ErrorCode.E103_INVALID_KEY,
            f"Value does not fit in {KEY_BITS} bits",
            {"bit_length": value.bit_length()},
        )
    return value.to_bytes(KEY_BYTES, "little")


def key_bytes_to_int(data: bytes) -> int:
    """Decode 128 little-endian bytes into an integer."""
    if len(data) != KEY_BYTES:
        raise CryptoError(
            ErrorCode.E103_INVALID_KEY,
            f"Expected {KEY_BYTES} key bytes, got {len(data)}",
            {"length": len(data)},
        )
    return int.from_bytes(data, "little")


def key_fingerprint(key_bytes: bytes) -> str:
    """
    Generate a SHA-256 fingerprint of derived key material.

    Both peers can compare fingerprints out-of-band to detect a
    man-in-the-middle, since the protocol itself cannot.

    Returns a 64-character hexadecimal fingerprint.
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(key_bytes)
    return digest.finalize().hex()


class KeyExchange:
    """
    Local key agreement state.

    Attributes:
        public_value: Value returned by the last start_session() call
    """

    def __init__(self):
        self._long_term = random_u1024()
        self._ephemeral: Optional[int] = None
        self.public_value: Optional[int] = None

    def _exponent(self) -> int:
        if self._ephemeral is None:
            raise CryptoError(
                ErrorCode.E104_KEY_GENERATION_FAILED,
                "No session started; call start_session() first",
            )
        return self._long_term + self._ephemeral

    def start_session(self) -> int:
        """
        Generate a fresh ephemeral exponent.

        Returns:
            The public value to send to the peer
        """
        self._ephemeral = random_field_element()
        self.public_value = fixed_exponentiation(GENERATOR, self._exponent())
        logger.debug("Started new key agreement session")
        return self.public_value

    def compute_shared(self, peer_public_value: int) -> int:
        """
        Compute the shared secret from the peer's public value.

        Args:
            peer_public_value: Value received in the peer's Acknowledge

        Returns:
            The shared secret, used directly as cipher key material

        Raises:
            CryptoError: If no session was started or the value is out of range
        """
        if peer_public_value < 0 or peer_public_value.bit_length() > KEY_BITS:
            raise CryptoError(
                ErrorCode.E103_INVALID_KEY,
                "Peer public value out of range",
                {"bit_length": peer_public_value.bit_length()},
            )
        return fixed_exponentiation(peer_public_value, self._exponent())
