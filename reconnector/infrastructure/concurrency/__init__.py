"""Coordination primitives for the supervisor loop."""

from .cancel_scope import CancelScope
from .signal_channel import SignalChannel

__all__ = [
    "CancelScope",
    "SignalChannel",
]
