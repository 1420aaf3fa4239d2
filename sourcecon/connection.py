# sourcecon/connection.py
from __future__ import annotations

import asyncio
import contextlib
from typing import Callable, Optional

from loguru import logger

from . import events
from .codec import ReceiveBuffer, try_decode_one
from .errors import NotConnectedError, RconError, TransportError
from .events import EventEmitter
from .protocol import ConnectionState, Frame

READ_CHUNK = 64 * 1024


class Connection:
    """Owns the TCP stream: connect, read loop, teardown.

    Every complete inbound frame is handed to `on_frame`; `on_closed` runs
    once per teardown with the failure that caused it (None for a local
    disconnect).
    """

    def __init__(
        self,
        host: str,
        port: int,
        on_frame: Callable[[Frame], None],
        on_closed: Optional[Callable[[Optional[BaseException]], None]] = None,
        emitter: Optional[EventEmitter] = None,
        debug: bool = False,
    ) -> None:
        self.host = host
        self.port = port
        self.on_frame = on_frame
        self.on_closed = on_closed
        self.emitter = emitter or EventEmitter()
        self.debug = debug
        self.state = ConnectionState.DISCONNECTED
        self.buffer = ReceiveBuffer()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    async def connect(self) -> bool:
        if self.state is not ConnectionState.DISCONNECTED:
            return False
        self.state = ConnectionState.CONNECTING
        try:
            self._reader, self._writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            self.state = ConnectionState.DISCONNECTED
            err = TransportError(f"cannot connect to {self.host}:{self.port}: {e}")
            err.__cause__ = e
            logger.debug("rcon.connect.failed host={} port={} error={}", self.host, self.port, e)
            self.emitter.emit(events.ERROR, err)
            return False
        if self.state is not ConnectionState.CONNECTING:
            # disconnect() ran while the socket was opening
            self._writer.close()
            self._reader = self._writer = None
            return False
        self.state = ConnectionState.CONNECTED
        self._read_task = asyncio.create_task(self._read_loop(), name=f"rcon-read-{self.host}:{self.port}")
        logger.info("rcon.connect host={} port={}", self.host, self.port)
        self.emitter.emit(events.CONNECT)
        return True

    async def write(self, *frames: bytes) -> None:
        if self._writer is None:
            raise NotConnectedError()
        for data in frames:
            if self.debug:
                logger.debug("<<< {}", _trace(data))
            self._writer.write(data)
        try:
            await self._writer.drain()
        except (ConnectionError, OSError) as e:
            err = TransportError(f"write failed: {e}")
            err.__cause__ = e
            self.disconnect(err)
            raise err

    def disconnect(self, cause: Optional[BaseException] = None) -> bool:
        if self._writer is None and self.state is ConnectionState.DISCONNECTED:
            return False
        writer, task = self._writer, self._read_task
        self._reader = self._writer = self._read_task = None
        self.state = ConnectionState.DISCONNECTED
        self.buffer.clear()
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        if writer is not None:
            with contextlib.suppress(Exception):
                writer.close()
        if cause is not None:
            logger.warning("rcon.connection.lost host={} port={} error={}", self.host, self.port, cause)
            self.emitter.emit(events.ERROR, cause)
        if self.on_closed is not None:
            self.on_closed(cause)
        logger.info("rcon.disconnect host={} port={}", self.host, self.port)
        self.emitter.emit(events.DISCONNECT)
        return True

    async def _read_loop(self) -> None:
        reader = self._reader
        assert reader is not None
        try:
            while True:
                data = await reader.read(READ_CHUNK)
                if not data:
                    raise TransportError("connection closed by server")
                self.buffer.feed(data)
                for frame in self.buffer.frames():
                    if self.debug:
                        logger.debug(">>> {}", frame.describe())
                    self.on_frame(frame)
        except asyncio.CancelledError:
            raise
        except RconError as e:
            self.disconnect(e)
        except (ConnectionError, OSError) as e:
            err = TransportError(str(e) or type(e).__name__)
            err.__cause__ = e
            self.disconnect(err)


def _trace(data: bytes) -> str:
    got = try_decode_one(data)
    return got[0].describe() if got else repr(data)
