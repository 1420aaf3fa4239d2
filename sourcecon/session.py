# sourcecon/session.py
from __future__ import annotations

import asyncio
from typing import Optional, Union

from loguru import logger

from . import events
from .codec import encode
from .connection import Connection
from .correlator import Correlator
from .errors import NotConnectedError, RconError, UnresolvedRequestError
from .events import EventEmitter, Handler
from .ids import IdAllocator
from .protocol import AuthState, ConnectionState, Frame, MessageType
from .util import Settings


class Session:
    """One RCON connection: connect, authenticate, send commands, receive pushes.

    Events (see `on`): connect, disconnect, error(exc), auth, response(id, first_chunk),
    push(frame), message(frame).
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 25575,
        *,
        encoding: str = "utf-8",
        timeout: Optional[float] = None,
        debug: bool = False,
    ) -> None:
        self.encoding = encoding
        self.timeout = timeout
        self.events = EventEmitter()
        self.ids = IdAllocator()
        self.correlator = Correlator(self.events)
        self.connection = Connection(
            host,
            port,
            on_frame=self._on_frame,
            on_closed=self._on_closed,
            emitter=self.events,
            debug=debug,
        )
        self._auth_state = AuthState.UNAUTHENTICATED

    @classmethod
    def from_settings(cls, settings: Settings, debug: bool = False) -> "Session":
        return cls(
            settings.host,
            settings.port,
            encoding=settings.encoding,
            timeout=settings.timeout,
            debug=debug,
        )

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    @property
    def auth_state(self) -> AuthState:
        return self._auth_state

    @property
    def authenticated(self) -> bool:
        return self._auth_state is AuthState.AUTHENTICATED

    def on(self, name: str, handler: Handler) -> Handler:
        return self.events.on(name, handler)

    def off(self, name: str, handler: Handler) -> bool:
        return self.events.off(name, handler)

    async def connect(self) -> bool:
        return await self.connection.connect()

    def disconnect(self) -> bool:
        return self.connection.disconnect()

    async def authenticate(self, password: str) -> bytes:
        if not self.connection.connected:
            raise NotConnectedError()
        self._auth_state = AuthState.AUTHENTICATING
        try:
            result = await self.send(password, MessageType.AUTH)
        except BaseException:
            if self._auth_state is AuthState.AUTHENTICATING:
                self._auth_state = AuthState.UNAUTHENTICATED
            raise
        self._auth_state = AuthState.AUTHENTICATED
        logger.info("rcon.auth.ok host={} port={}", self.connection.host, self.connection.port)
        self.events.emit(events.AUTH)
        return result

    async def send(self, command: Union[str, bytes], kind: int = MessageType.EXECCOMMAND) -> bytes:
        """Send one command and wait for its complete reply body.

        Authentication requests resolve to b"" on success.
        """
        if not self.connection.connected:
            raise NotConnectedError()
        req_id = self.ids.allocate()
        req = self.correlator.register(req_id, kind)
        frames = [encode(req_id, kind, command, self.encoding)]
        if kind != MessageType.AUTH:
            sentinel_id = self.ids.allocate()
            self.correlator.link_sentinel(sentinel_id, req_id)
            frames.append(encode(sentinel_id, MessageType.RESPONSE_VALUE))
        try:
            await self.connection.write(*frames)
        except RconError:
            self.correlator.abandon(req_id)
            if req.future.done() and not req.future.cancelled():
                req.future.exception()
            raise
        try:
            if self.timeout is None:
                return await req.future
            return await asyncio.wait_for(req.future, self.timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            self.correlator.abandon(req_id)
            raise

    async def command(self, command: str) -> str:
        body = await self.send(command)
        return body.decode(self.encoding, "replace")

    async def __aenter__(self) -> "Session":
        if not await self.connect():
            raise NotConnectedError(f"cannot connect to {self.connection.host}:{self.connection.port}")
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.disconnect()

    def _on_frame(self, frame: Frame) -> None:
        self.events.emit(events.MESSAGE, frame)
        if not self.correlator.dispatch(frame):
            self.events.emit(events.PUSH, frame)

    def _on_closed(self, cause: Optional[BaseException]) -> None:
        self._auth_state = AuthState.UNAUTHENTICATED
        reason = str(cause) if cause is not None else "disconnected"

        def unresolved(req_id: int) -> BaseException:
            err = UnresolvedRequestError(req_id, reason)
            err.__cause__ = cause
            return err

        failed = self.correlator.fail_all(unresolved)
        if failed:
            logger.warning("rcon.requests.unresolved count={} reason={}", failed, reason)

