"""State machines for managing supervisor lifecycle transitions."""

from .supervisor_state_machine import (
    SupervisorStateMachine,
    SupervisorState,
    SupervisorEvent,
)

__all__ = [
    "SupervisorStateMachine",
    "SupervisorState",
    "SupervisorEvent",
]
