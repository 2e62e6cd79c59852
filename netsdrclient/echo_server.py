"""
Loopback stand-ins for a NetSDR radio.

EchoServer answers the control channel by echoing every chunk back;
UdpTimedSender feeds the data channel with DATA_ITEM0 frames of random
samples at a fixed interval.
"""

import asyncio
import logging
import os
import socket
import struct
from typing import Optional

from .common import DEFAULT_HOST, log
from .messages import encode_data_message
from .models import MsgType

class ClientHandler:
    """Echoes every chunk a connected client sends straight back to it."""

    def __init__(self, logger: Optional[logging.Logger] = None, chunk_size: int = 8192):
        self._log = logger or log
        self.chunk_size = chunk_size
        self._writers: set[asyncio.StreamWriter] = set()

    def close_all(self):
        for writer in list(self._writers):
            writer.close()

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        peer = writer.get_extra_info("peername")
        self._log.info(f"Client connected: {peer}")
        self._writers.add(writer)
        try:
            while True:
                data = await reader.read(self.chunk_size)
                if not data:
                    break
                writer.write(data)
                await writer.drain()
                self._log.info(f"Echoed {len(data)} bytes to the client.")
        except (ConnectionError, OSError) as e:
            self._log.error(f"Error with client {peer}: {e}")
        finally:
            self._writers.discard(writer)
            writer.close()
            self._log.info(f"Client disconnected: {peer}")

class EchoServer:
    """asyncio TCP server standing in for the radio's control port."""

    def __init__(self, port: int = 0, host: str = DEFAULT_HOST,
                 handler: Optional[ClientHandler] = None,
                 logger: Optional[logging.Logger] = None):
        self.host = host
        self._requested_port = int(port)
        self._log = logger or log
        self.handler = handler or ClientHandler(self._log)
        self._server: Optional[asyncio.Server] = None

    @property
    def port(self) -> int:
        """Bound port; differs from the requested one when that was 0."""
        if self._server is None or not self._server.sockets:
            return self._requested_port
        return self._server.sockets[0].getsockname()[1]

    async def start(self):
        if self._server is not None:
            return
        self._server = await asyncio.start_server(
            self.handler.handle_client, self.host, self._requested_port)
        self._log.info(f"Server started on {self.host}:{self.port}.")

    async def stop(self):
        server, self._server = self._server, None
        if server is None:
            return
        server.close()
        # wait_closed() also waits for connected clients on newer Pythons
        self.handler.close_all()
        await server.wait_closed()
        self._log.info("Server stopped.")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

class UdpTimedSender:
    """Sends DATA_ITEM0 frames of random 16-bit samples to a UDP port."""

    SAMPLES_PER_PACKET = 1024

    def __init__(self, host: str, port: int, logger: Optional[logging.Logger] = None):
        self.host = host
        self.port = int(port)
        self._log = logger or log
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._task: Optional[asyncio.Task] = None
        self._counter = 0

    @property
    def counter(self) -> int:
        return self._counter

    def start_sending(self, interval: float):
        """Send one packet now and then every `interval` seconds."""
        if self._task is not None:
            raise RuntimeError("Sender already running.")
        self._task = asyncio.create_task(self._run(float(interval)), name="netsdr-udp-sender")

    async def _run(self, interval: float):
        while True:
            self.send_message()
            await asyncio.sleep(interval)

    def send_message(self):
        try:
            self._counter = (self._counter + 1) & 0xFFFF
            samples = os.urandom(self.SAMPLES_PER_PACKET)
            msg = encode_data_message(MsgType.DATA_ITEM0,
                                      struct.pack("<H", self._counter) + samples)
            self._sock.sendto(msg, (self.host, self.port))
            self._log.info(f"Sent UDP packet to {self.host}:{self.port}")
        except OSError as e:
            self._log.error(f"UDP send error: {e}")

    def stop_sending(self):
        task, self._task = self._task, None
        if task is not None:
            task.cancel()

    def close(self):
        self.stop_sending()
        self._sock.close()
