# sourcecon/codec.py
from __future__ import annotations

import struct
from typing import Iterator, Optional, Union

from .errors import ProtocolError
from .protocol import FRAME_OVERHEAD, Frame

_SIZE = struct.Struct("<i")
_HEADER = struct.Struct("<iii")
HEADER_SIZE = _HEADER.size  # size, id, type

# Compact the arena once the consumed prefix is at least this large.
_COMPACT_MIN = 4096


def encode(req_id: int, kind: int, body: Union[bytes, str] = b"", encoding: str = "utf-8") -> bytes:
    if isinstance(body, str):
        body = body.encode(encoding)
    return _HEADER.pack(FRAME_OVERHEAD + len(body), req_id, kind) + body + b"\x00\x00"


def try_decode_one(buf: Union[bytes, bytearray, memoryview], offset: int = 0) -> Optional[tuple[Frame, int]]:
    """Decode the frame starting at `offset`.

    Returns (frame, consumed) or None when the buffer does not yet hold a
    whole frame; nothing is consumed in that case.
    """
    avail = len(buf) - offset
    if avail < _SIZE.size:
        return None
    (size,) = _SIZE.unpack_from(buf, offset)
    if size < FRAME_OVERHEAD:
        raise ProtocolError(f"declared frame size {size} is shorter than the header")
    total = _SIZE.size + size
    if avail < total:
        return None
    _, req_id, kind = _HEADER.unpack_from(buf, offset)
    body = bytes(buf[offset + HEADER_SIZE:offset + total - 2])
    return Frame(req_id, kind, body), total


class ReceiveBuffer:
    """Byte arena with a read cursor; holds only the trailing partial frame between feeds."""

    def __init__(self) -> None:
        self._data = bytearray()
        self._pos = 0

    def __len__(self) -> int:
        return len(self._data) - self._pos

    def feed(self, data: bytes) -> None:
        self._data += data

    def frames(self) -> Iterator[Frame]:
        while True:
            got = try_decode_one(self._data, self._pos)
            if got is None:
                break
            frame, consumed = got
            self._pos += consumed
            yield frame
        self._compact()

    def clear(self) -> None:
        self._data.clear()
        self._pos = 0

    def _compact(self) -> None:
        if self._pos == len(self._data):
            self.clear()
        elif self._pos >= _COMPACT_MIN and self._pos * 2 >= len(self._data):
            del self._data[:self._pos]
            self._pos = 0
