"""Compact length-prefixed binary encoding for scalar values.

Each value is a one-byte tag followed by its payload, big-endian:

    0x00 null
    0x01 false
    0x02 true
    0x03 int64          8 bytes, signed
    0x04 big int        u32 length + two's-complement bytes
    0x05 float64        8 bytes
    0x06 string         u32 length + UTF-8 bytes

The tombstone index is written as a count followed by that many values.
"""

from __future__ import annotations

import io
import struct
from typing import Any, BinaryIO, Iterable

from .errors import CodecError

TAG_NULL = 0x00
TAG_FALSE = 0x01
TAG_TRUE = 0x02
TAG_INT64 = 0x03
TAG_BIGINT = 0x04
TAG_FLOAT64 = 0x05
TAG_STRING = 0x06

_INT64 = struct.Struct(">q")
_FLOAT64 = struct.Struct(">d")
_LENGTH = struct.Struct(">I")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def write_value(value: Any, stream: BinaryIO) -> None:
    if value is None:
        stream.write(bytes((TAG_NULL,)))
    elif isinstance(value, bool):
        stream.write(bytes((TAG_TRUE if value else TAG_FALSE,)))
    elif isinstance(value, int):
        if _INT64_MIN <= value <= _INT64_MAX:
            stream.write(bytes((TAG_INT64,)) + _INT64.pack(value))
        else:
            size = (value.bit_length() + 8) // 8
            raw = value.to_bytes(size, "big", signed=True)
            stream.write(bytes((TAG_BIGINT,)) + _LENGTH.pack(len(raw)) + raw)
    elif isinstance(value, float):
        stream.write(bytes((TAG_FLOAT64,)) + _FLOAT64.pack(value))
    elif isinstance(value, str):
        raw = value.encode("utf-8")
        stream.write(bytes((TAG_STRING,)) + _LENGTH.pack(len(raw)) + raw)
    else:
        raise TypeError(f"cannot encode value of type {type(value).__name__}")


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if data is None or len(data) != size:
        raise CodecError(f"truncated value: expected {size} bytes, got {len(data or b'')}")
    return data


def read_value(stream: BinaryIO) -> Any:
    tag = _read_exact(stream, 1)[0]
    if tag == TAG_NULL:
        return None
    if tag == TAG_FALSE:
        return False
    if tag == TAG_TRUE:
        return True
    if tag == TAG_INT64:
        return _INT64.unpack(_read_exact(stream, _INT64.size))[0]
    if tag == TAG_BIGINT:
        (length,) = _LENGTH.unpack(_read_exact(stream, _LENGTH.size))
        return int.from_bytes(_read_exact(stream, length), "big", signed=True)
    if tag == TAG_FLOAT64:
        return _FLOAT64.unpack(_read_exact(stream, _FLOAT64.size))[0]
    if tag == TAG_STRING:
        (length,) = _LENGTH.unpack(_read_exact(stream, _LENGTH.size))
        raw = _read_exact(stream, length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CodecError(f"invalid UTF-8 string value: {exc}") from exc
    raise CodecError(f"unknown value tag 0x{tag:02x}")


def encode_values(values: Iterable[Any]) -> bytes:
    buffer = io.BytesIO()
    for value in values:
        write_value(value, buffer)
    return buffer.getvalue()


def decode_values(data: bytes) -> list[Any]:
    stream = io.BytesIO(data)
    values: list[Any] = []
    while stream.tell() < len(data):
        values.append(read_value(stream))
    return values
