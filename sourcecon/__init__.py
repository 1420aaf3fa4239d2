from .codec import ReceiveBuffer, encode, try_decode_one
from .correlator import Correlator, PendingRequest
from .errors import (
    AuthenticationError,
    NotConnectedError,
    ProtocolError,
    RconError,
    TransportError,
    UnresolvedRequestError,
)
from .ids import IdAllocator, next_id
from .protocol import AuthState, ConnectionState, Frame, MessageType
from .session import Session
from .util import Settings, load_settings

__all__ = [
    "AuthState",
    "AuthenticationError",
    "ConnectionState",
    "Correlator",
    "Frame",
    "IdAllocator",
    "MessageType",
    "NotConnectedError",
    "PendingRequest",
    "ProtocolError",
    "RconError",
    "ReceiveBuffer",
    "Session",
    "Settings",
    "TransportError",
    "UnresolvedRequestError",
    "encode",
    "load_settings",
    "next_id",
    "try_decode_one",
]
