# sourcecon/events.py
from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

from loguru import logger

Handler = Callable[..., Any]

CONNECT = "connect"
DISCONNECT = "disconnect"
ERROR = "error"
AUTH = "auth"
RESPONSE = "response"
PUSH = "push"
MESSAGE = "message"

EVENTS = (CONNECT, DISCONNECT, ERROR, AUTH, RESPONSE, PUSH, MESSAGE)


class EventEmitter:
    """Synchronous listener registry.

    Handlers run on the event loop inside the read path, so a handler that
    raises is logged and skipped rather than breaking frame processing.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def on(self, name: str, handler: Handler) -> Handler:
        if name not in EVENTS:
            raise ValueError(f"unknown event {name!r}")
        self._handlers[name].append(handler)
        return handler

    def off(self, name: str, handler: Handler) -> bool:
        handlers = self._handlers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def emit(self, name: str, *args: Any) -> None:
        for handler in list(self._handlers.get(name, ())):
            try:
                handler(*args)
            except Exception:
                logger.exception("rcon.event.handler_error event={}", name)
