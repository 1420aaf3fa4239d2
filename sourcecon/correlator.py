# sourcecon/correlator.py
"""Request/response correlation over one RCON stream.

The protocol has no "more data follows" flag, so every command is followed
by an empty RESPONSE_VALUE frame under the next id. The server answers in
order, so the echo of that sentinel id arrives only after every chunk of the
command's reply; its arrival closes the reply.
"""
from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

from loguru import logger

from . import events
from .errors import AuthenticationError
from .events import EventEmitter
from .protocol import Frame, MessageType

# Failed auth is answered under this id instead of the request's.
AUTH_FAILED_ID = -1

# Source servers follow the sentinel echo with this body under the same id.
SENTINEL_TRAILER = b"\x00\x01\x00\x00"
CLOSED_SENTINELS_KEPT = 32


@dataclass
class PendingRequest:
    id: int
    type: int
    future: asyncio.Future
    accumulated: bytearray = field(default_factory=bytearray)
    chunks: int = 0

    @property
    def is_auth(self) -> bool:
        return self.type == MessageType.AUTH


class Correlator:
    def __init__(self, emitter: Optional[EventEmitter] = None) -> None:
        self.emitter = emitter or EventEmitter()
        self.pending: dict[int, PendingRequest] = {}
        self.sentinels: dict[int, int] = {}  # sentinel id -> original request id
        self.closed: deque[int] = deque(maxlen=CLOSED_SENTINELS_KEPT)

    def __len__(self) -> int:
        return len(self.pending)

    def register(self, req_id: int, kind: int) -> PendingRequest:
        if req_id in self.pending or req_id in self.sentinels:
            raise RuntimeError(f"request id {req_id} already in flight")
        fut = asyncio.get_running_loop().create_future()
        req = PendingRequest(req_id, int(kind), fut)
        self.pending[req_id] = req
        if req_id in self.closed:
            self.closed.remove(req_id)
        return req

    def link_sentinel(self, sentinel_id: int, original_id: int) -> None:
        self.sentinels[sentinel_id] = original_id
        if sentinel_id in self.closed:
            self.closed.remove(sentinel_id)

    def abandon(self, req_id: int) -> None:
        """Forget a request whose caller stopped waiting.

        Entries with a sentinel still outstanding stay so that late chunks are
        not mistaken for pushes; the sentinel echo removes them.
        """
        if req_id not in self.sentinels.values():
            self.pending.pop(req_id, None)

    def dispatch(self, frame: Frame) -> bool:
        """Route one inbound frame. Returns False if it belongs to no request."""
        original = self.sentinels.pop(frame.id, None)
        if original is not None:
            self.closed.append(frame.id)
            req = self.pending.pop(original, None)
            if req is not None:
                logger.debug("rcon.reply.complete id={} chunks={} bytes={}", req.id, req.chunks, len(req.accumulated))
                _resolve(req, bytes(req.accumulated))
            return True

        if frame.id in self.closed and frame.type == MessageType.RESPONSE_VALUE and frame.body == SENTINEL_TRAILER:
            self.closed.remove(frame.id)
            return True

        req = self.pending.get(frame.id)
        if req is not None:
            if req.is_auth:
                # Source servers send an empty RESPONSE_VALUE ahead of the auth answer.
                if frame.type == MessageType.AUTH_RESPONSE:
                    del self.pending[frame.id]
                    _resolve(req, b"")
            elif req.type in (MessageType.EXECCOMMAND, MessageType.RESPONSE_VALUE):
                if req.chunks == 0:
                    self.emitter.emit(events.RESPONSE, req.id, frame.body)
                req.accumulated += frame.body
                req.chunks += 1
            return True

        if frame.id == AUTH_FAILED_ID and frame.type == MessageType.AUTH_RESPONSE:
            failed = [r for r in self.pending.values() if r.is_auth]
            if failed:
                for r in failed:
                    del self.pending[r.id]
                    _fail(r, AuthenticationError())
                return True

        return False

    def fail_all(self, make_exc: Callable[[int], BaseException]) -> int:
        """Fail every outstanding request and forget all sentinels."""
        reqs = list(self.pending.values())
        self.pending.clear()
        self.sentinels.clear()
        self.closed.clear()
        for req in reqs:
            _fail(req, make_exc(req.id))
        return len(reqs)


def _resolve(req: PendingRequest, value: bytes) -> None:
    if not req.future.done():
        req.future.set_result(value)


def _fail(req: PendingRequest, exc: BaseException) -> None:
    if not req.future.done():
        req.future.set_exception(exc)
