"""Shared constants, errors and async helpers for the NetSDR client."""

import asyncio
import socket
import logging
from typing import Awaitable, Callable, Optional, TypeVar

log = logging.getLogger("netsdrclient")

LOG_FORMAT = '%(asctime)s %(levelname)s %(message)s'

DEFAULT_HOST    = "127.0.0.1"

NETSDR_TCP_PORT = 50000         # TCP control channel on the radio

NETSDR_UDP_PORT = 60000         # local UDP port the radio streams IQ data to

MAX_MESSAGE_LENGTH           = 8191     # 13-bit length field
MAX_DATA_ITEM_MESSAGE_LENGTH = 8194     # data items only, encoded as length 0

MSG_HEADER_LENGTH          = 2
MSG_CONTROL_ITEM_LENGTH    = 2
MSG_SEQUENCE_NUMBER_LENGTH = 2

UDP_RECV_BUFFER_SIZE = 4 * 1024 * 1024   # SO_RCVBUF for the IQ data socket

T = TypeVar("T")


class NetSdrError(RuntimeError):
    """Base class for NetSDR client errors."""


class NotConnectedError(NetSdrError):
    """Raised when an operation needs an open control connection."""


class OperationCancelledError(NetSdrError):
    """Raised by CancellationScope.guard() when its scope was cancelled."""


class MessageLengthError(ValueError):
    """Raised when a message would not fit in a single frame."""


def setup_logging(debug: bool = False):
    """Configure root logging for process entry points."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)
    return log


def _pick_udp_listen_port() -> int:
    """Return a free ephemeral local UDP port."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        probe.bind(("", 0))
        return int(probe.getsockname()[1])
    finally:
        probe.close()


class CancellationScope:
    """
    Cancellation token shared by every suspending call of one
    connect/listen cycle.

    cancel() wakes any operation currently awaited through guard(), not only
    the ones started afterwards.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        self._event.set()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable` unless the scope is cancelled first."""
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelledError("Operation cancelled")

        op = asyncio.ensure_future(awaitable)
        stop = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait((op, stop), return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            op.cancel()
            stop.cancel()
            raise
        stop.cancel()

        if op.done():
            return op.result()
        op.cancel()
        raise OperationCancelledError("Operation cancelled")


class EventHook:
    """Ordered subscriber registry for a single event."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self._logger = logger or log
        self._handlers: list[Callable[[bytes], None]] = []

    def subscribe(self, handler: Callable[[bytes], None]):
        self._handlers.append(handler)

    def unsubscribe(self, handler: Callable[[bytes], None]):
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def __len__(self) -> int:
        return len(self._handlers)

    def emit(self, payload: bytes):
        for handler in list(self._handlers):
            try:
                handler(payload)
            except Exception as e:
                # A faulty subscriber must not kill the receive loop.
                self._logger.error(f"{self.name} handler failed: {e}")
