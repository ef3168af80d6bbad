"""Error logging for connection I/O methods."""

import asyncio
import inspect
import logging
from functools import wraps
from typing import Callable, Optional

from bleak.exc import BleakError

from ...domain.exceptions import TransportError


def handle_transport_errors(
    operation_name: str,
    timeout: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
):
    """Log a failed connection operation with its peer, then re-raise.

    Decorates coroutine methods of IConnection implementations. The peer is
    read from the instance's `remote_address`, so each log line says which
    connection failed. Errors always propagate: a failed write is the
    caller's to handle, and a lost link is reported by the transport's
    lifecycle hooks, not here.

    Args:
        operation_name: Human-readable operation name for logging
        timeout: Bound the method applies to its own I/O, logged when it
            expires
        logger: Logger to use (defaults to the method's module logger)

    Raises:
        TypeError: If applied to a plain function

    Example:
        @handle_transport_errors("TCP send", timeout=TCP_WRITE_TIMEOUT)
        async def send(self, data: bytes) -> None:
            self._writer.write(data)
            await asyncio.wait_for(self._writer.drain(), TCP_WRITE_TIMEOUT)
    """

    def decorator(func: Callable):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"{func.__qualname__} is not a coroutine function")
        log = logger or logging.getLogger(func.__module__)

        @wraps(func)
        async def wrapper(conn, *args, **kwargs):
            peer = getattr(conn, "remote_address", None)
            try:
                return await func(conn, *args, **kwargs)
            except TransportError as err:
                # Refused before any I/O, e.g. on a closed handle
                log.debug("%s to %s refused: %s", operation_name, peer, err)
                raise
            except asyncio.TimeoutError:
                # Checked before OSError: TimeoutError subclasses it
                log.warning("%s to %s timed out after %ss", operation_name, peer, timeout)
                raise
            except BleakError as err:
                log.error("%s to %s BLE error: %s", operation_name, peer, err)
                raise
            except OSError as err:
                log.error("%s to %s socket error: %s", operation_name, peer, err)
                raise
            except Exception as err:
                log.error(
                    "%s to %s unexpected error: %s",
                    operation_name,
                    peer,
                    err,
                    exc_info=True,
                )
                raise

        return wrapper

    return decorator
