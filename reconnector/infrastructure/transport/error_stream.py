"""Helpers for the bounded error stream shared by all transports."""

import asyncio
import logging

_LOGGER = logging.getLogger(__name__)


def report_error(errors: "asyncio.Queue[Exception]", err: Exception) -> None:
    """Queue a dial error without blocking.

    When nobody is draining the stream the oldest error is dropped to make
    room, so the newest failure is always delivered.
    """
    try:
        errors.put_nowait(err)
    except asyncio.QueueFull:
        _LOGGER.warning("Error stream full, dropping oldest error")
        try:
            errors.get_nowait()
        except asyncio.QueueEmpty:
            pass
        errors.put_nowait(err)


def clear_errors(errors: "asyncio.Queue[Exception]") -> int:
    """Discard all pending errors.

    Returns:
        Number of errors discarded
    """
    dropped = 0
    while not errors.empty():
        try:
            errors.get_nowait()
        except asyncio.QueueEmpty:
            break
        dropped += 1
    return dropped
