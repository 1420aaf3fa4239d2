# sourcecon/errors.py
from __future__ import annotations


class RconError(Exception):
    """Base class for everything the RCON engine raises."""


class TransportError(RconError):
    """Socket failure or the server closed the connection."""


class ProtocolError(RconError):
    """The inbound byte stream cannot be parsed as frames any more."""


class NotConnectedError(RconError):
    def __init__(self, message: str = "Not connected") -> None:
        super().__init__(message)


class UnresolvedRequestError(RconError):
    """A request was still waiting for its reply when the connection went away."""

    def __init__(self, request_id: int, reason: str = "connection closed") -> None:
        super().__init__(f"request {request_id} unresolved: {reason}")
        self.request_id = request_id


class AuthenticationError(RconError):
    def __init__(self, message: str = "RCON auth failed") -> None:
        super().__init__(message)
