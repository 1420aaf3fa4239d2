# sourcecon/ids.py
from __future__ import annotations

# Never used as request ids: -1 is the failed-auth reply id, 0 is left unused.
RESERVED_IDS = (-1, 0)


def _to_int32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - 0x1_0000_0000 if n & 0x8000_0000 else n


def next_id(current: int) -> int:
    """Next request id after `current`, wrapping in 32 bits and skipping -1 and 0."""
    nid = _to_int32(current + 1)
    if nid == -1:
        nid += 1
    if nid == 0:
        nid += 1
    return nid


class IdAllocator:
    """Session-scoped id cursor."""

    def __init__(self, start: int = 1) -> None:
        if _to_int32(start) in RESERVED_IDS:
            start = next_id(start)
        self._current = _to_int32(start)

    @property
    def current(self) -> int:
        return self._current

    def allocate(self) -> int:
        rid = self._current
        self._current = next_id(rid)
        return rid
