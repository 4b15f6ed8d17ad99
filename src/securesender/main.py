"""
Secure Sender - Console entry point.

Runs the poll loop for one Peer and prints connection status and messages.
Lines typed on stdin are sent to the peer; lines starting with "/" are
commands.
"""

import argparse
import logging
import queue
import sys
import threading
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import Config
from .errors import ConfigError, NetworkError
from .network import Event, HandshakeCompleted, MessageReceived, Peer, PeerLeft, PeerStatus
from .utils import format_fingerprint, setup_logging, validate_port

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  /connect HOST:PORT   connect to a peer
  /disconnect          leave the current session
  /status              show connection status
  /quit                exit
Any other line is sent as a message."""


def render_event(console: Console, event: Event) -> None:
    """Print one peer event."""
    if isinstance(event, HandshakeCompleted):
        console.print("[cyan]\\[net][/] keys have been exchanged")
        console.print(f"[cyan]\\[net][/] key fingerprint: {format_fingerprint(event.fingerprint)}")
    elif isinstance(event, MessageReceived):
        console.print(f"[magenta]\\[msg][/] {escape(event.text)}")
    elif isinstance(event, PeerLeft):
        console.print(f"[cyan]\\[net][/] the recipient has disconnected ({event.reason})")


def render_status(console: Console, peer: Peer) -> None:
    if peer.status == PeerStatus.ACTIVE:
        phase = "secured" if peer.is_secured else "awaiting keys"
        console.print(f"Status: [green]Active[/] ({phase})")
    else:
        console.print(f"Status: [red]Inactive[/] (listening on {peer.host}:{peer.port})")


def handle_line(console: Console, peer: Peer, line: str) -> bool:
    """
    Handle one line of user input.

    Returns:
        False when the user asked to quit
    """
    line = line.strip()
    if not line:
        return True

    command, _, argument = line.partition(" ")

    try:
        if command == "/quit":
            return False
        elif command == "/connect":
            peer.connect(argument.strip())
            console.print(f"[cyan]\\[net][/] connected to {escape(argument.strip())}")
        elif command == "/disconnect":
            peer.disconnect()
            console.print("[cyan]\\[net][/] disconnected")
        elif command == "/status":
            render_status(console, peer)
        elif command == "/help":
            console.print(HELP_TEXT, markup=False)
        elif command.startswith("/"):
            console.print(f"[yellow]Unknown command:[/] {escape(command)}")
        else:
            peer.send(line)
    except NetworkError as e:
        console.print(f"[red]\\[net][/] {escape(e.message)}")

    return True


def _read_stdin(lines: "queue.Queue[Optional[str]]") -> None:
    for line in sys.stdin:
        lines.put(line)
    lines.put(None)


def run(peer: Peer, console: Console, poll_interval: float) -> None:
    """Drive ``peer`` until the user quits or stdin closes."""
    lines: "queue.Queue[Optional[str]]" = queue.Queue()
    threading.Thread(target=_read_stdin, args=(lines,), daemon=True).start()

    while True:
        if peer.accept_if_idle():
            host, port = peer.session.address[:2]
            console.print(f"[cyan]\\[net][/] receiving from {host}:{port}")

        for event in peer.poll_all():
            render_event(console, event)

        try:
            line = lines.get(timeout=poll_interval)
        except queue.Empty:
            continue

        if line is None or not handle_line(console, peer, line):
            return


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Secure Sender - Direct two-party encrypted messaging",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  securesender --port 5000                         # Listen on port 5000
  securesender --port 5001 --connect 127.0.0.1:5000  # Listen and dial a peer
        """,
    )

    parser.add_argument("--version", action="version", version=f"Secure Sender {__version__}")
    parser.add_argument("--config", type=str, default=None, help="Path to a TOML configuration file")
    parser.add_argument("--host", type=str, default=None, help="Listen address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (default: 5000)")
    parser.add_argument("--connect", type=str, default=None, metavar="HOST:PORT", help="Peer to connect to on startup")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for Secure Sender."""
    args = build_parser().parse_args(argv)
    console = Console()

    try:
        config = Config(Path(args.config).expanduser() if args.config else None)
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/]")
        return 1

    host = args.host or config.get("network", "host")
    port = args.port if args.port is not None else config.get("network", "port")
    peer_address = args.connect or config.get("network", "peer")

    log_file = config.get("logging", "file")
    setup_logging(
        "DEBUG" if args.debug else config.get("logging", "level"),
        log_file=Path(log_file) if log_file else None,
        console=config.get("logging", "console"),
    )

    if not validate_port(port, allow_ephemeral=True):
        console.print(f"[red]Invalid port: {port}[/]")
        return 1

    try:
        peer = Peer(host, port)
    except NetworkError as e:
        console.print(f"[red]{escape(e.message)}[/]")
        return 1

    try:
        console.print(f"Secure Sender {__version__} listening on {peer.host}:{peer.port}. Type /help for commands.")
        if peer_address:
            try:
                peer.connect(peer_address)
                console.print(f"[cyan]\\[net][/] connected to {escape(peer_address)}")
            except NetworkError as e:
                console.print(f"[red]\\[net][/] failed to connect: {escape(e.message)}")
        run(peer, console, config.get("ui", "poll_interval"))
    except KeyboardInterrupt:
        console.print("\nInterrupted, leaving session...")
    finally:
        peer.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
