"""
Socket adapters behind the NetSDR channel clients.

The clients only talk to the small interfaces below, so tests can hand
them fakes instead of real sockets.
"""

import asyncio
import socket
from typing import Optional, Protocol, runtime_checkable

from .common import UDP_RECV_BUFFER_SIZE

@runtime_checkable
class NetworkStream(Protocol):
    """Full-duplex byte stream of an open control connection."""

    @property
    def can_read(self) -> bool: ...

    @property
    def can_write(self) -> bool: ...

    async def read(self, size: int) -> bytes:
        """Read up to `size` bytes; b"" means the peer closed."""
        ...

    async def write(self, data: bytes) -> None: ...

    def close(self) -> None: ...

@runtime_checkable
class TcpTransport(Protocol):
    @property
    def connected(self) -> bool: ...

    async def connect(self, host: str, port: int) -> None: ...

    def get_stream(self) -> NetworkStream: ...

    def close(self) -> None: ...

@runtime_checkable
class DatagramSocket(Protocol):
    def bind(self, address: tuple[str, int]) -> None: ...

    async def receive(self) -> tuple[bytes, tuple]:
        """Wait for one datagram; returns (payload, remote address)."""
        ...

    def close(self) -> None: ...


class StreamAdapter:
    """NetworkStream over an asyncio reader/writer pair."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self._reader = reader
        self._writer = writer

    @property
    def can_read(self) -> bool:
        return not self._reader.at_eof()

    @property
    def can_write(self) -> bool:
        return not self._writer.is_closing()

    async def read(self, size: int) -> bytes:
        return await self._reader.read(size)

    async def write(self, data: bytes) -> None:
        self._writer.write(data)
        await self._writer.drain()

    def close(self) -> None:
        if not self._writer.is_closing():
            self._writer.close()


class AsyncioTcpTransport:
    """Production TCP transport built on asyncio.open_connection()."""

    def __init__(self, connect_timeout: float = 5.0):
        self.connect_timeout = float(connect_timeout)
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def connect(self, host: str, port: int) -> None:
        self._reader, self._writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout=self.connect_timeout)
        self._apply_tcp_options(self._writer.get_extra_info("socket"))

    def _apply_tcp_options(self, s: Optional[socket.socket]):
        """Best-effort low-latency socket option."""
        if s is None:
            return
        try:
            s.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError:
            pass

    def get_stream(self) -> NetworkStream:
        if self._reader is None or self._writer is None:
            raise ConnectionError("Transport is not connected")
        return StreamAdapter(self._reader, self._writer)

    def close(self) -> None:
        writer, self._writer, self._reader = self._writer, None, None
        if writer is not None and not writer.is_closing():
            writer.close()


class _DatagramQueue(asyncio.DatagramProtocol):
    """Buffers datagrams and socket errors until receive() collects them."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()

    def datagram_received(self, data: bytes, addr: tuple):
        self.queue.put_nowait((data, addr))

    def error_received(self, exc: Exception):
        self.queue.put_nowait(exc)

    def connection_lost(self, exc: Optional[Exception]):
        self.queue.put_nowait(exc or ConnectionAbortedError("Datagram socket closed"))


class AsyncioDatagramSocket:
    """
    Production UDP socket driven by the running event loop.

    The bound socket is handed to a datagram endpoint on the first
    receive(); from then on the endpoint owns it, so close() is safe at
    any time, even with a receive still pending.
    """

    def __init__(self, rcvbuf: int = UDP_RECV_BUFFER_SIZE):
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, rcvbuf)
        except OSError:
            pass
        self._sock.setblocking(False)
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._protocol: Optional[_DatagramQueue] = None
        self._handed_off = False
        self._closed = False

    def bind(self, address: tuple[str, int]) -> None:
        self._sock.bind(address)

    def getsockname(self):
        return self._sock.getsockname()

    async def _open_endpoint(self):
        self._handed_off = True
        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.create_datagram_endpoint(
                _DatagramQueue, sock=self._sock)
        except BaseException:
            # create_datagram_endpoint() already closed the transport
            self._closed = True
            raise
        if self._closed:
            transport.close()
            raise ConnectionAbortedError("Datagram socket closed")
        self._transport, self._protocol = transport, protocol

    async def receive(self) -> tuple[bytes, tuple]:
        if self._closed:
            raise ConnectionAbortedError("Datagram socket closed")
        if self._protocol is None:
            await self._open_endpoint()
        item = await self._protocol.queue.get()
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._transport is not None:
            self._transport.close()
        elif not self._handed_off:
            self._sock.close()
