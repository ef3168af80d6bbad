"""Single-slot coalescing signal channel."""

import asyncio
import logging

_LOGGER = logging.getLogger(__name__)


class SignalChannel:
    """Event channel holding at most one pending signal.

    Producers never block: a notify() while a signal is already pending is
    dropped. Consumers only learn that at least one event happened, never
    how many.

    Attributes:
        name: Label used in debug logging
        _event: Dirty flag; set while a signal is pending

    Example:
        >>> channel = SignalChannel("connect_ok")
        >>> channel.notify()
        True
        >>> channel.notify()  # coalesced
        False
        >>> await channel.receive()
        >>> channel.pending
        False
    """

    def __init__(self, name: str):
        self.name = name
        self._event = asyncio.Event()

    @property
    def pending(self) -> bool:
        """Whether a signal is waiting to be consumed."""
        return self._event.is_set()

    def notify(self) -> bool:
        """Post a signal without blocking.

        Returns:
            True if posted, False if coalesced into a pending signal
        """
        if self._event.is_set():
            _LOGGER.debug("Signal %s already pending, coalesced", self.name)
            return False
        self._event.set()
        return True

    def drain(self) -> bool:
        """Discard the pending signal, if any.

        Returns:
            True if a signal was discarded
        """
        was_pending = self._event.is_set()
        self._event.clear()
        return was_pending

    async def wait(self) -> None:
        """Wait until a signal is pending without consuming it."""
        await self._event.wait()

    async def receive(self) -> None:
        """Wait for a signal and consume it.

        Every waiter wakes on set(); only the first one to run finds the
        flag still set and takes it, the others go back to waiting.
        """
        while True:
            await self._event.wait()
            if self._event.is_set():
                self._event.clear()
                return

    def __repr__(self) -> str:
        return f"SignalChannel(name={self.name!r}, pending={self.pending})"
