from __future__ import annotations

import struct

import pytest

from sourcecon.codec import ReceiveBuffer, encode, try_decode_one
from sourcecon.errors import ProtocolError
from sourcecon.protocol import Frame, MessageType


def test_encode_layout() -> None:
    data = encode(7, MessageType.EXECCOMMAND, "list")
    assert len(data) == 14 + 4
    size, req_id, kind = struct.unpack_from("<iii", data)
    assert size == 4 + 4 + 4 + 2
    assert req_id == 7
    assert kind == 2
    assert data[12:16] == b"list"
    assert data[-2:] == b"\x00\x00"


def test_encode_empty_body_is_14_bytes() -> None:
    assert encode(1, MessageType.RESPONSE_VALUE) == struct.pack("<iii", 10, 1, 0) + b"\x00\x00"


@pytest.mark.parametrize(
    "frame",
    [
        Frame(1, MessageType.AUTH, b"changeme123"),
        Frame(-1, MessageType.AUTH_RESPONSE, b""),
        Frame(2**31 - 1, 99, "héllo wörld\n".encode()),
    ],
)
def test_decode_reproduces_encoded_frame(frame: Frame) -> None:
    data = encode(frame.id, frame.type, frame.body)
    got = try_decode_one(data)
    assert got == (frame, len(data))


def test_decode_needs_more_data() -> None:
    data = encode(3, MessageType.EXECCOMMAND, "status")
    assert try_decode_one(data[:3]) is None
    assert try_decode_one(data[:-1]) is None


def test_decode_at_offset_leaves_trailing_bytes() -> None:
    a = encode(1, 0, "a")
    b = encode(2, 0, "bb")
    frame, consumed = try_decode_one(a + b, len(a))
    assert frame == Frame(2, 0, b"bb")
    assert consumed == len(b)


def test_declared_size_shorter_than_header_is_protocol_error() -> None:
    with pytest.raises(ProtocolError):
        try_decode_one(struct.pack("<iii", 4, 1, 0) + b"\x00\x00")


def test_byte_at_a_time_matches_single_chunk() -> None:
    stream = b"".join(
        [
            encode(1, 0, "first"),
            encode(2, 0, ""),
            encode(3, 2, "x" * 5000),
            encode(-5, 0, "pushed line\n"),
        ]
    )
    whole = ReceiveBuffer()
    whole.feed(stream)
    expected = list(whole.frames())

    trickle = ReceiveBuffer()
    got = []
    for i in range(len(stream)):
        trickle.feed(stream[i:i + 1])
        got.extend(trickle.frames())

    assert got == expected
    assert len(got) == 4
    assert len(trickle) == 0


def test_receive_buffer_keeps_partial_frame() -> None:
    data = encode(9, 0, "partial")
    buf = ReceiveBuffer()
    buf.feed(data + data[:5])
    assert [f.id for f in buf.frames()] == [9]
    assert len(buf) == 5
    buf.feed(data[5:])
    assert [f.body for f in buf.frames()] == [b"partial"]
    assert len(buf) == 0


def test_receive_buffer_compacts_consumed_prefix() -> None:
    big = encode(1, 0, b"y" * 8000)
    buf = ReceiveBuffer()
    buf.feed(big + big[:100])
    assert len(list(buf.frames())) == 1
    assert len(buf._data) == 100
    assert buf._pos == 0
