"""
Pytest configuration and fixtures for Secure Sender tests.

Provides common fixtures and test utilities for unit and integration tests.
"""

import shutil
import socket
import tempfile
import time
from pathlib import Path
from typing import Callable, Dict, Generator, List, Tuple

import pytest

from securesender.key_exchange import KeyExchange
from securesender.network import Event, Peer
from securesender.session import Session


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test data.

    Yields:
        Path: Temporary directory path
    """
    tmp = Path(tempfile.mkdtemp(prefix="securesender_test_"))
    try:
        yield tmp
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def session_pair() -> Generator[Tuple[Session, Session], None, None]:
    """
    Two unsecured sessions joined by a connected socket pair.

    Yields:
        (left, right) sessions
    """
    left_sock, right_sock = socket.socketpair()
    left = Session.from_socket(left_sock, ("left", 0))
    right = Session.from_socket(right_sock, ("right", 0))
    try:
        yield left, right
    finally:
        left.close()
        right.close()


@pytest.fixture
def secured_session_pair(session_pair) -> Tuple[Session, Session]:
    """Two sessions keyed from one key agreement."""
    left, right = session_pair
    alice, bob = KeyExchange(), KeyExchange()
    alice_public = alice.start_session()
    bob_public = bob.start_session()
    left.secure(alice.compute_shared(bob_public))
    right.secure(bob.compute_shared(alice_public))
    return left, right


@pytest.fixture
def peer_factory() -> Generator[Callable[[], Peer], None, None]:
    """
    Create listening peers on ephemeral loopback ports.

    All peers are closed after the test.
    """
    peers: List[Peer] = []

    def factory() -> Peer:
        peer = Peer("127.0.0.1", 0)
        peers.append(peer)
        return peer

    yield factory

    for peer in peers:
        peer.close()


@pytest.fixture
def pump() -> Callable[..., Dict[Peer, List[Event]]]:
    """
    Drive peers the way the console loop does until a condition holds.

    Returns a function ``pump(*peers, until, timeout=5.0)`` that repeatedly
    calls accept_if_idle() and poll_all() on each peer, collecting events,
    until ``until(events)`` is true.
    """

    def run(*peers: Peer, until: Callable[[Dict[Peer, List[Event]]], bool], timeout: float = 5.0):
        events: Dict[Peer, List[Event]] = {peer: [] for peer in peers}
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            for peer in peers:
                peer.accept_if_idle()
                events[peer].extend(peer.poll_all())
            if until(events):
                return events
            time.sleep(0.01)
        raise AssertionError(f"Condition not reached within {timeout}s: {events}")

    return run


def read_packet(session: Session, timeout: float = 5.0):
    """Poll ``session.read()`` until a packet arrives."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        packet = session.read()
        if packet is not None:
            return packet
        time.sleep(0.005)
    raise AssertionError("No packet received")


@pytest.fixture
def receive():
    """Return a helper that waits for the next packet on a session."""
    return read_packet


# Pytest marks
def pytest_configure(config):
    """
    Configure pytest markers.

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# Test collection hooks
def pytest_collection_modifyitems(config, items):
    """
    Add markers based on test location.

    Args:
        config: Pytest configuration
        items: List of collected test items
    """
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
