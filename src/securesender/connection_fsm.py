"""
Secure Sender - Session state machine.

This module implements a small finite state machine for the session
lifecycle. A session starts UNSECURED, where only the handshake
Acknowledge may be exchanged, becomes SECURED once the local key has been
derived, and ends CLOSED.
"""

import logging
from enum import Enum, auto
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Session phases."""

    UNSECURED = auto()  # Connected, awaiting the peer's Acknowledge
    SECURED = auto()  # Ciphers initialized, messages are meaningful
    CLOSED = auto()  # Session released


class SessionEvent(Enum):
    """Events that trigger state transitions."""

    KEYS_EXCHANGED = auto()  # Peer Acknowledge processed and ciphers keyed
    PEER_LEFT = auto()  # Leave received or stream closed by peer
    CLOSE_REQUESTED = auto()  # Local disconnect
    ERROR_OCCURRED = auto()  # Fatal I/O or decode error


class SessionStateMachine:
    """
    Finite state machine for one session.

    Enforces valid transitions and keeps the message of the error that
    closed the session, if any.
    """

    TRANSITIONS: Dict[SessionState, Dict[SessionEvent, SessionState]] = {
        SessionState.UNSECURED: {
            SessionEvent.KEYS_EXCHANGED: SessionState.SECURED,
            SessionEvent.PEER_LEFT: SessionState.CLOSED,
            SessionEvent.CLOSE_REQUESTED: SessionState.CLOSED,
            SessionEvent.ERROR_OCCURRED: SessionState.CLOSED,
        },
        SessionState.SECURED: {
            SessionEvent.PEER_LEFT: SessionState.CLOSED,
            SessionEvent.CLOSE_REQUESTED: SessionState.CLOSED,
            SessionEvent.ERROR_OCCURRED: SessionState.CLOSED,
        },
        SessionState.CLOSED: {},
    }

    def __init__(self, initial_state: SessionState = SessionState.UNSECURED):
        self.current_state = initial_state
        self.error_message: Optional[str] = None

        logger.debug(f"Session state machine initialized in state: {self.current_state.name}")

    def transition(self, event: SessionEvent, error_msg: Optional[str] = None) -> bool:
        """
        Attempt state transition based on event.

        Args:
            event: Event triggering transition
            error_msg: Error message if event is ERROR_OCCURRED

        Returns:
            True if transition successful, False otherwise
        """
        if not self.is_valid_transition(self.current_state, event):
            logger.debug(f"Ignored transition: {self.current_state.name} + {event.name}")
            return False

        new_state = self.TRANSITIONS[self.current_state][event]

        if event == SessionEvent.ERROR_OCCURRED:
            self.error_message = error_msg or "Unknown error"

        old_state = self.current_state
        self.current_state = new_state

        logger.debug(f"Session state: {old_state.name} -> {new_state.name} (event: {event.name})")
        return True

    def is_valid_transition(self, from_state: SessionState, event: SessionEvent) -> bool:
        """Check if a transition is valid."""
        return event in self.TRANSITIONS.get(from_state, {})

    def is_secured(self) -> bool:
        return self.current_state == SessionState.SECURED

    def is_closed(self) -> bool:
        return self.current_state == SessionState.CLOSED

    def __repr__(self) -> str:
        return f"SessionStateMachine(state={self.current_state.name})"
