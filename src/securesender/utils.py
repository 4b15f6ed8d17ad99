"""
Secure Sender - Utility functions.

Provides address parsing and validation, fingerprint formatting,
and logging setup.
"""

import ipaddress
import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Tuple, Union

from rich.logging import RichHandler

from .constants import LOG_BACKUP_COUNT, LOG_DATE_FORMAT, LOG_FORMAT, LOG_MAX_BYTES
from .errors import ErrorCode, NetworkError

logger = logging.getLogger(__name__)

Address = Union[str, Tuple[str, int]]


def validate_port(port: int, allow_ephemeral: bool = False) -> bool:
    """
    Validate a port number.

    Args:
        port: Port number to validate
        allow_ephemeral: Whether 0 (let the OS choose) is accepted

    Returns:
        True if valid, False otherwise
    """
    if allow_ephemeral and port == 0:
        return True
    return 1 <= port <= 65535


def validate_ip(ip: str) -> bool:
    """
    Validate an IPv4 or IPv6 address string.

    Returns:
        True if valid IP address, False otherwise
    """
    try:
        ipaddress.ip_address(ip)
        return True
    except ValueError:
        return False


def validate_hostname(hostname: str) -> bool:
    """
    Validate a hostname.

    Args:
        hostname: Hostname string

    Returns:
        True if valid hostname, False otherwise
    """
    if not hostname:
        return False

    if len(hostname) > 255:
        return False

    if hostname[-1] == ".":
        hostname = hostname[:-1]

    # Check again after stripping trailing dot
    if not hostname:
        return False

    pattern = r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
    return bool(re.match(pattern, hostname))


def parse_address(address: Address) -> Tuple[str, int]:
    """
    Parse a peer address.

    Accepts ``"host:port"``, ``"[ipv6]:port"`` or a ``(host, port)`` tuple.

    Raises:
        NetworkError: If the address is malformed
    """
    if isinstance(address, tuple):
        host, port = address
    else:
        text = address.strip()
        match = re.match(r"^\[(?P<v6>[^\]]+)\]:(?P<port>\d+)$", text) or re.match(
            r"^(?P<host>[^:\s]+):(?P<port>\d+)$", text
        )
        if not match:
            raise NetworkError(
                ErrorCode.E002_INVALID_ARGUMENT,
                f"Invalid address (expected host:port): {address!r}",
                {"address": address},
            )
        host = match.group("v6") if match.groupdict().get("v6") else match.group("host")
        port = int(match.group("port"))

    if not (validate_ip(host) or validate_hostname(host)):
        raise NetworkError(
            ErrorCode.E002_INVALID_ARGUMENT, f"Invalid host: {host!r}", {"host": host}
        )
    if not validate_port(port):
        raise NetworkError(
            ErrorCode.E002_INVALID_ARGUMENT, f"Invalid port: {port}", {"port": port}
        )
    return host, port


def format_fingerprint(fingerprint: str) -> str:
    """
    Format a fingerprint for display with spaces every 4 characters.

    Args:
        fingerprint: Hex fingerprint string

    Returns:
        Formatted fingerprint
    """
    return " ".join(fingerprint[i : i + 4] for i in range(0, len(fingerprint), 4))


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Path] = None,
    console: bool = True,
) -> logging.Logger:
    """
    Configure the ``securesender`` logger.

    Console output goes through rich; the optional log file rotates at
    LOG_MAX_BYTES.

    Returns:
        The package logger
    """
    package_logger = logging.getLogger("securesender")
    package_logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    if console:
        package_logger.addHandler(RichHandler(show_path=False, rich_tracebacks=True))

    if log_file is not None:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        package_logger.addHandler(file_handler)

    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())

    return package_logger
