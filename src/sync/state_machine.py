"""Sync session lifecycle state machine."""

from enum import Enum, auto
from typing import ClassVar

import structlog

from src.core.constants import COMPONENT_SYNC


class SessionState(Enum):
    """Sync session lifecycle states.

    State transitions:
        STARTED -> FETCHING: Lock held, begin downloading pages
        FETCHING -> PUBLISHING: All pages streamed, validate and publish
        PUBLISHING -> SUCCEEDED: Output published
        STARTED/FETCHING/PUBLISHING -> FAILED: Failure at any stage
    """

    STARTED = auto()
    FETCHING = auto()
    PUBLISHING = auto()
    SUCCEEDED = auto()
    FAILED = auto()


class SessionStateError(Exception):
    """Raised when an invalid session state transition is attempted."""

    def __init__(self, from_state: SessionState, to_state: SessionState) -> None:
        """Initialize the error.

        Args:
            from_state: The current state.
            to_state: The attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid session state transition: {from_state.name} -> {to_state.name}"
        )


class SessionStateMachine:
    """State machine for one sync session.

    Enforces valid state transitions and logs invariant violations.
    """

    VALID_TRANSITIONS: ClassVar[dict[SessionState, set[SessionState]]] = {
        SessionState.STARTED: {SessionState.FETCHING, SessionState.FAILED},
        SessionState.FETCHING: {SessionState.PUBLISHING, SessionState.FAILED},
        SessionState.PUBLISHING: {SessionState.SUCCEEDED, SessionState.FAILED},
        SessionState.SUCCEEDED: set(),  # Terminal state
        SessionState.FAILED: set(),  # Terminal state
    }

    def __init__(self, log: structlog.typing.FilteringBoundLogger) -> None:
        """Initialize the state machine in STARTED state.

        Args:
            log: Logger bound to the session sink.
        """
        self._state = SessionState.STARTED
        self._log = log.bind(component=COMPONENT_SYNC)

    @property
    def state(self) -> SessionState:
        """Get the current state."""
        return self._state

    def can_transition(self, to_state: SessionState) -> bool:
        """Check if a transition to the given state is valid."""
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: SessionState) -> None:
        """Transition to a new state.

        Args:
            to_state: The target state.

        Raises:
            SessionStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            self._log.error(
                "invariant_violation",
                error_type="illegal_state_transition",
                from_state=self._state.name,
                to_state=to_state.name,
            )
            raise SessionStateError(self._state, to_state)

        old_state = self._state
        self._state = to_state
        self._log.debug(
            "session_state_transition",
            from_state=old_state.name,
            to_state=to_state.name,
        )

