# sourcecon/protocol.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class MessageType(IntEnum):
    """Source RCON packet types.

    AUTH_RESPONSE and EXECCOMMAND share the wire value 2; which one a frame
    means depends on the request it answers.
    """

    RESPONSE_VALUE = 0
    EXECCOMMAND = 2
    AUTH_RESPONSE = 2
    AUTH = 3


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class AuthState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


# id + type + two terminator bytes
FRAME_OVERHEAD = 10


@dataclass(frozen=True)
class Frame:
    """One length-prefixed packet. `type` is a plain int so unknown values survive."""

    id: int
    type: int
    body: bytes = b""

    @property
    def size(self) -> int:
        return FRAME_OVERHEAD + len(self.body)

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, "replace")

    def describe(self) -> str:
        try:
            kind = MessageType(self.type).name
        except ValueError:
            kind = str(self.type)
        return f"size={self.size}, id={self.id}, type={kind} : {self.body!r}"
