from __future__ import annotations

import asyncio
from typing import Callable, Optional

import pytest_asyncio

from sourcecon.codec import ReceiveBuffer, encode
from sourcecon.protocol import Frame, MessageType

PASSWORD = "secret"


class FakeRconServer:
    """In-process RCON server that answers the way a Minecraft server does.

    Commands found in `replies` are answered with one frame per chunk; an
    empty RESPONSE_VALUE is echoed back under its own id.
    """

    def __init__(self) -> None:
        self.replies: dict[str, list[bytes]] = {}
        self.received: list[Frame] = []
        # Optional override: return the raw bytes to write for an inbound frame.
        self.handler: Optional[Callable[[Frame], list[bytes]]] = None
        self.server: Optional[asyncio.AbstractServer] = None
        self.writers: list[asyncio.StreamWriter] = []
        self.port = 0
        self.closed = asyncio.Event()  # set when a client connection ends

    async def start(self) -> None:
        self.server = await asyncio.start_server(self._serve, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        for w in self.writers:
            w.close()
        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()

    async def push(self, body: bytes, req_id: int = 0) -> None:
        await self.write_raw(encode(req_id, MessageType.RESPONSE_VALUE, body))

    async def write_raw(self, data: bytes) -> None:
        for w in self.writers:
            w.write(data)
            await w.drain()

    async def drop_clients(self) -> None:
        for w in self.writers:
            w.close()
        self.writers.clear()

    def answer(self, frame: Frame) -> list[bytes]:
        if self.handler is not None:
            return self.handler(frame)
        return self.default_answer(frame)

    def default_answer(self, frame: Frame) -> list[bytes]:
        if frame.type == MessageType.AUTH:
            ok = frame.body == PASSWORD.encode()
            return [encode(frame.id if ok else -1, MessageType.AUTH_RESPONSE, b"")]
        if frame.type == MessageType.EXECCOMMAND:
            chunks = self.replies.get(frame.text(), [b"Unknown command\n"])
            return [encode(frame.id, MessageType.RESPONSE_VALUE, c) for c in chunks]
        return [encode(frame.id, MessageType.RESPONSE_VALUE, frame.body)]

    async def _serve(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.writers.append(writer)
        buf = ReceiveBuffer()
        try:
            while True:
                data = await reader.read(4096)
                if not data:
                    break
                buf.feed(data)
                for frame in buf.frames():
                    self.received.append(frame)
                    for out in self.answer(frame):
                        writer.write(out)
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            writer.close()
            self.closed.set()


@pytest_asyncio.fixture
async def rcon_server():
    server = FakeRconServer()
    await server.start()
    yield server
    await server.stop()
