"""
Tests for the console entry point.

Tests command handling, event rendering and argument parsing.
"""

import io

import pytest
from rich.console import Console

from securesender import __version__
from securesender.main import build_parser, handle_line, main, render_event, render_status
from securesender.network import HandshakeCompleted, MessageReceived, PeerLeft
from securesender.utils import setup_logging


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def output(console):
    return console.file.getvalue()


def test_render_events(console):
    """Test that each event kind prints a line."""
    render_event(console, HandshakeCompleted("abcdef0123456789"))
    render_event(console, MessageReceived("[bold]not markup[/bold]"))
    render_event(console, PeerLeft("leave"))

    text = output(console)
    assert "keys have been exchanged" in text
    assert "abcd ef01 2345 6789" in text
    assert "[bold]not markup[/bold]" in text
    assert "the recipient has disconnected (leave)" in text


def test_status_inactive(console, peer_factory):
    """Test status while listening without a session."""
    peer = peer_factory()

    render_status(console, peer)

    assert "Inactive" in output(console)
    assert str(peer.port) in output(console)


def test_quit_and_blank_lines(console, peer_factory):
    """Test that only /quit stops the loop."""
    peer = peer_factory()

    assert handle_line(console, peer, "") is True
    assert handle_line(console, peer, "   \n") is True
    assert handle_line(console, peer, "/quit") is False


def test_help_and_unknown_command(console, peer_factory):
    """Test help output and unknown commands."""
    peer = peer_factory()

    handle_line(console, peer, "/help")
    handle_line(console, peer, "/frobnicate")

    text = output(console)
    assert "/connect HOST:PORT" in text
    assert "Unknown command: /frobnicate" in text


def test_send_without_session_reports_error(console, peer_factory):
    """Test that network errors are printed instead of raised."""
    peer = peer_factory()

    assert handle_line(console, peer, "hello?") is True
    assert "No active session" in output(console)


def test_connect_and_message(console, peer_factory, pump):
    """Test /connect followed by a message to the listening peer."""
    alice = peer_factory()
    bob = peer_factory()

    handle_line(console, bob, f"/connect 127.0.0.1:{alice.port}")
    assert "connected to 127.0.0.1" in output(console)
    pump(alice, bob, until=lambda events: alice.is_secured and bob.is_secured)

    handle_line(console, bob, "over the wire")
    events = pump(alice, until=lambda ev: len(ev[alice]) >= 1)
    assert events[alice] == [MessageReceived("over the wire")]

    handle_line(console, bob, "/status")
    assert "Active" in output(console)

    handle_line(console, bob, "/disconnect")
    assert bob.session is None


def test_connect_bad_address(console, peer_factory):
    """Test that an unparsable address is reported."""
    peer = peer_factory()

    handle_line(console, peer, "/connect nowhere")

    assert "Invalid address" in output(console)
    assert peer.session is None


def test_parser_options():
    """Test command line parsing."""
    args = build_parser().parse_args(["--port", "6000", "--connect", "127.0.0.1:5000", "--debug"])

    assert args.port == 6000
    assert args.connect == "127.0.0.1:5000"
    assert args.debug is True
    assert args.host is None


def test_version_flag(capsys):
    """Test --version output."""
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--version"])

    assert __version__ in capsys.readouterr().out


def test_main_rejects_invalid_port(temp_dir):
    """Test that an out-of-range port exits with an error code."""
    try:
        result = main(["--config", str(temp_dir / "missing.toml"), "--port", "70000"])
    finally:
        setup_logging("INFO", console=False)

    assert result == 1


def test_main_rejects_broken_config(temp_dir):
    """Test that a malformed configuration file exits with an error code."""
    path = temp_dir / "broken.toml"
    path.write_text("[network\n", encoding="utf-8")

    assert main(["--config", str(path)]) == 1
