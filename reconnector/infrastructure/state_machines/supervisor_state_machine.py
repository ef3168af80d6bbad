"""Supervisor state machine for explicit lifecycle tracking."""

import logging
from enum import Enum, auto
from typing import Callable, Dict, Optional

_LOGGER = logging.getLogger(__name__)


class SupervisorState(Enum):
    """Supervisor loop states."""

    IDLE = auto()
    RUNNING = auto()
    STOPPED = auto()


class SupervisorEvent(Enum):
    """Events that trigger supervisor state transitions."""

    START = auto()
    CANCELLED = auto()


class SupervisorStateMachine:
    """State machine for the supervisor loop lifecycle.

    Valid transitions:
        IDLE -> RUNNING (on START)
        RUNNING -> STOPPED (on CANCELLED)
        STOPPED -> RUNNING (on START, with a fresh scope)

    Disconnects and dial errors do not change state: the loop stays RUNNING
    while it backs off and restarts the transport.

    Example:
        >>> sm = SupervisorStateMachine()
        >>> sm.transition(SupervisorEvent.START)
        True
        >>> sm.is_running
        True
        >>> sm.transition(SupervisorEvent.START)
        False
    """

    def __init__(self):
        """Initialize state machine in IDLE state."""
        self._state = SupervisorState.IDLE
        self._previous_state: Optional[SupervisorState] = None

        # Callbacks for state changes
        self._on_state_change: Dict[SupervisorState, Callable] = {}

        # Valid transitions: (current_state, event) -> new_state
        self._transitions = {
            (SupervisorState.IDLE, SupervisorEvent.START): SupervisorState.RUNNING,
            (
                SupervisorState.RUNNING,
                SupervisorEvent.CANCELLED,
            ): SupervisorState.STOPPED,
            (SupervisorState.STOPPED, SupervisorEvent.START): SupervisorState.RUNNING,
        }

    @property
    def state(self) -> SupervisorState:
        """Get current state."""
        return self._state

    @property
    def previous_state(self) -> Optional[SupervisorState]:
        """Get the state before the last transition."""
        return self._previous_state

    @property
    def is_running(self) -> bool:
        """Check if the loop is supervising."""
        return self._state == SupervisorState.RUNNING

    def transition(self, event: SupervisorEvent) -> bool:
        """Attempt state transition.

        Args:
            event: Event triggering transition

        Returns:
            True if transition valid and executed, False otherwise
        """
        key = (self._state, event)

        if key not in self._transitions:
            _LOGGER.debug(
                "Invalid transition: %s + %s",
                self._state.name,
                event.name,
            )
            return False

        self._change_state(self._transitions[key], event)
        return True

    def _change_state(self, new_state: SupervisorState, event: SupervisorEvent):
        self._previous_state = self._state
        self._state = new_state

        _LOGGER.debug(
            "Supervisor state: %s -> %s (event: %s)",
            self._previous_state.name,
            new_state.name,
            event.name,
        )

        if new_state in self._on_state_change:
            try:
                self._on_state_change[new_state]()
            except Exception as err:
                _LOGGER.error("Error in state change callback: %s", err)

    def on_state(self, state: SupervisorState, callback: Callable):
        """Register callback for state entry.

        Args:
            state: State to watch
            callback: Function to call on state entry (no args)
        """
        self._on_state_change[state] = callback

    def __str__(self) -> str:
        return f"SupervisorStateMachine(state={self._state.name})"

    def __repr__(self) -> str:
        return f"SupervisorStateMachine(state={self._state!r}, previous={self._previous_state!r})"
