"""NetSDR TCP control-channel client."""

import asyncio
import logging
from typing import Callable, Optional, Union

from .common import (
    MAX_DATA_ITEM_MESSAGE_LENGTH,
    CancellationScope,
    EventHook,
    NotConnectedError,
    OperationCancelledError,
    log,
)
from .models import ConnectionState
from .transport import AsyncioTcpTransport, NetworkStream, TcpTransport

class NetSdrTcpClient:
    """
    Manages the NetSDR TCP control connection.

    Raw inbound chunks are published through `message_received` exactly as
    the socket returned them; framing is left to the caller.
    """

    def __init__(self, host: str, port: int,
                 transport_factory: Optional[Callable[[], TcpTransport]] = None,
                 logger: Optional[logging.Logger] = None):
        self.host = host
        self.port = int(port)
        self._transport_factory = transport_factory or AsyncioTcpTransport
        self._log = logger or log
        self._transport: Optional[TcpTransport] = None
        self._stream: Optional[NetworkStream] = None
        self._scope: Optional[CancellationScope] = None
        self._listener: Optional[asyncio.Task] = None
        self._state = ConnectionState.DISCONNECTED
        self.message_received = EventHook("tcp message_received", self._log)

    @property
    def connected(self) -> bool:
        return (self._transport is not None
                and self._transport.connected
                and self._stream is not None)

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def connect(self):
        if self.connected:
            self._log.info(f"Already connected to {self.host}:{self.port}")
            return
        if self._state is ConnectionState.CONNECTING:
            self._log.info(f"Connection to {self.host}:{self.port} already in progress")
            return
        if self._transport is not None or self._stream is not None:
            # Half-dead connection, e.g. the transport dropped underneath us
            self.disconnect()

        transport = self._transport_factory()
        scope = CancellationScope()
        self._transport = transport
        self._scope = scope
        self._state = ConnectionState.CONNECTING
        try:
            await scope.guard(transport.connect(self.host, self.port))
            stream = transport.get_stream()
        except OperationCancelledError:
            self._log.info(f"Connection to {self.host}:{self.port} cancelled")
            self._abort_connect(transport, scope)
            return
        except asyncio.CancelledError:
            self._abort_connect(transport, scope)
            raise
        except Exception as e:
            self._log.error(f"Failed to connect to {self.host}:{self.port}: {e}")
            self._abort_connect(transport, scope)
            return

        if self._transport is not transport:
            # disconnect() ran while we were still connecting
            self._close_quietly(stream)
            self._close_quietly(transport)
            return

        self._stream = stream
        self._state = ConnectionState.CONNECTED
        self._log.info(f"Connected to {self.host}:{self.port}")
        self._listener = asyncio.create_task(
            self._listen_loop(scope, stream), name="netsdr-tcp-listener")

    def _abort_connect(self, transport: TcpTransport, scope: CancellationScope):
        scope.cancel()
        self._close_quietly(transport)
        if self._transport is transport:
            self._transport = None
            self._scope = None
            self._state = ConnectionState.DISCONNECTED

    def disconnect(self):
        if self._transport is None and self._stream is None:
            self._log.info("No active connection to disconnect.")
            return

        scope, stream, transport = self._scope, self._stream, self._transport
        self._scope = None
        self._stream = None
        self._transport = None
        self._listener = None
        self._state = ConnectionState.DISCONNECTED

        if scope is not None:
            scope.cancel()
        if stream is not None:
            self._close_quietly(stream)
        if transport is not None:
            self._close_quietly(transport)
        self._log.info("Disconnected.")

    def _close_quietly(self, resource):
        try:
            resource.close()
        except Exception as e:
            self._log.warning(f"Error while closing {type(resource).__name__}: {e}")

    async def send_message(self, data: Union[bytes, bytearray, str]):
        """
        Write one message to the radio.
        Raises NotConnectedError when there is no open, writable connection,
        including when a disconnect interrupts the write.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        stream, scope = self._stream, self._scope
        if not self.connected or stream is None or scope is None or not stream.can_write:
            raise NotConnectedError("Not connected to a server.")

        self._log.debug(f"Message sent: {bytes(data).hex(' ')}")
        try:
            await scope.guard(stream.write(bytes(data)))
        except OperationCancelledError as e:
            raise NotConnectedError("Connection closed while sending.") from e
        except OSError as e:
            if self._stream is not stream:
                raise NotConnectedError("Connection closed while sending.") from e
            raise

    async def _listen_loop(self, scope: CancellationScope, stream: NetworkStream):
        try:
            self._log.info("Starting listening for incoming messages.")
            while not scope.cancelled:
                chunk = await scope.guard(stream.read(MAX_DATA_ITEM_MESSAGE_LENGTH))
                if not chunk:
                    self._log.warning("TCP connection closed by remote host")
                    break
                self._log.debug(f"RX {len(chunk)} bytes")
                self.message_received.emit(bytes(chunk))
        except OperationCancelledError:
            pass
        except Exception as e:
            self._log.error(f"Error in listening loop: {e}")
        finally:
            self._log.info("Listener stopped.")
            # Only tear down the connection this loop was serving
            if self._stream is stream:
                self.disconnect()
