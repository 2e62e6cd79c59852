"""NetSDR UDP data-channel listener."""

import hashlib
import logging
from typing import Callable, Optional, Protocol

from .common import CancellationScope, EventHook, OperationCancelledError, log
from .transport import AsyncioDatagramSocket, DatagramSocket

class HashAlgorithm(Protocol):
    def compute_hash(self, data: bytes) -> bytes: ...

    def dispose(self) -> None: ...

class Sha256Adapter:
    """SHA-256 over hashlib; used only to derive a listener's identity hash."""

    def __init__(self):
        self._disposed = False

    def compute_hash(self, data: bytes) -> bytes:
        if self._disposed:
            raise RuntimeError("Hash algorithm has been disposed")
        return hashlib.sha256(data).digest()

    def dispose(self):
        self._disposed = True

class NetSdrUdpListener:
    """
    Receives NetSDR data-item datagrams and publishes each payload,
    unparsed, through `message_received`.

    start_listening() runs the receive loop in the awaiting task until
    stop_listening(), exit() or dispose() is called; the listener can be
    started again afterwards unless it was disposed.
    """

    BIND_ADDRESS = ""   # all local interfaces

    def __init__(self, port: int,
                 hash_algorithm: Optional[HashAlgorithm] = None,
                 socket_factory: Optional[Callable[[], DatagramSocket]] = None,
                 logger: Optional[logging.Logger] = None):
        self.port = int(port)
        self._hash_algorithm = hash_algorithm or Sha256Adapter()
        self._socket_factory = socket_factory or AsyncioDatagramSocket
        self._log = logger or log
        self._socket: Optional[DatagramSocket] = None
        self._scope: Optional[CancellationScope] = None
        self._disposed = False
        self._hash: Optional[int] = None
        self.packet_count = 0
        self.message_received = EventHook("udp message_received", self._log)

    @property
    def listening(self) -> bool:
        return self._scope is not None and not self._scope.cancelled

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def start_listening(self):
        if self.listening or self._disposed:
            return

        scope = CancellationScope()
        self._scope = scope
        sock = None
        self._log.info(f"Start listening for UDP messages on port {self.port}...")
        try:
            sock = self._socket_factory()
            self._socket = sock
            sock.bind((self.BIND_ADDRESS, self.port))
            while not scope.cancelled:
                data, addr = await scope.guard(sock.receive())
                self.packet_count += 1
                self.message_received.emit(bytes(data))
                self._log.debug(f"Received {len(data)} bytes from {addr}")
        except OperationCancelledError:
            pass
        except Exception as e:
            self._log.error(f"Error receiving message: {e}")
        finally:
            self._release(scope, sock, "Listener stopped.")

    def stop_listening(self):
        self._cleanup("Stopped listening for UDP messages.")

    def exit(self):
        self._cleanup("Stopped listening for UDP messages.")

    def _cleanup(self, message: str):
        if self._disposed:
            return
        self._release(self._scope, self._socket, message)

    def _release(self, scope: Optional[CancellationScope],
                 sock: Optional[DatagramSocket], message: str):
        if scope is not None:
            scope.cancel()
        if sock is not None:
            try:
                sock.close()
            except Exception as e:
                self._log.error(f"Error while stopping: {e}")
        # A newer listen cycle may already own the fields
        if self._scope is scope:
            self._scope = None
        if self._socket is sock:
            self._socket = None
        self._log.info(message)

    def dispose(self):
        if self._disposed:
            return
        self._cleanup("Disposing NetSdrUdpListener.")
        # Cache the identity hash while the algorithm is still usable
        hash(self)
        self._hash_algorithm.dispose()
        self._disposed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()

    def __hash__(self) -> int:
        if self._hash is None:
            endpoint = f"0.0.0.0:{self.port}".encode("ascii")
            digest = self._hash_algorithm.compute_hash(endpoint)
            self._hash = int.from_bytes(digest[:8], "little", signed=True)
        return self._hash
