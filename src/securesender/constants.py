"""
Secure Sender - Global Constants and Configuration Values

This module defines all constants used throughout Secure Sender.
Wire format sizes, cryptographic parameters and configuration defaults
are centralized here.

Author: Secure Sender contributors
Version: 1.0.0
"""

# Version Information
VERSION = "1.0.0"
APP_NAME = "Secure Sender"

# Network Constants
DEFAULT_SERVER_PORT = 5000
DEFAULT_HOST = "127.0.0.1"
RECV_CHUNK_SIZE = 4096

# Socket Timeouts (seconds)
CONNECT_TIMEOUT = 10  # Bound on dialing a peer
SEND_TIMEOUT = 10  # Bound on a single outgoing write

# Key Agreement Constants
# Both peers must agree on the prime before any communication. It is fixed
# rather than negotiated.
LARGE_SHARED_PRIME = int(
    "2666059058123518101548143651795902542003950378111894701790280012124011918017464857102059640892783997"
)
GENERATOR = 2
KEY_BITS = 1024
KEY_BYTES = KEY_BITS // 8  # 128 bytes on the wire

# Stream Cipher Constants
CIPHER_STATE_SIZE = 256
CIPHER_DROP_BYTES = 3072  # Leading keystream bytes discarded after key setup
MAX_CIPHER_KEY_SIZE = 256

# Packet Format
DISCRIMINANT_SIZE = 1
LENGTH_FIELD_FORMAT = "<Q"  # u64 little-endian, identical on every platform
LENGTH_FIELD_SIZE = 8
MAX_TEXT_MESSAGE_SIZE = 1024 * 1024  # 1 MiB

# Console Driver
POLL_INTERVAL = 0.05  # seconds between polls when idle

# File Paths
DEFAULT_DATA_DIR = "~/.securesender"
CONFIG_FILENAME = "config.toml"

# Logging Configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5
