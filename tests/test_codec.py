from __future__ import annotations

import io

import pytest

from layerstore.codec import (
    TAG_INT64,
    TAG_STRING,
    decode_values,
    encode_values,
    read_value,
    write_value,
)
from layerstore.errors import CodecError


def test_values_keep_their_types() -> None:
    values = [None, True, False, 0, -7, 2**70, -(2**70), 1.5, "HSQLDB", "SQL Server (jTDS)", "übung"]

    decoded = decode_values(encode_values(values))

    assert decoded == values
    assert [type(item) for item in decoded] == [type(item) for item in values]


def test_int_and_string_layout_is_length_prefixed() -> None:
    assert encode_values([1]) == bytes((TAG_INT64,)) + (1).to_bytes(8, "big")
    assert encode_values(["ab"]) == bytes((TAG_STRING,)) + (2).to_bytes(4, "big") + b"ab"


def test_count_then_keys_stream_layout() -> None:
    stream = io.BytesIO()
    keys = ["Derby Network Client", "HSQLDB"]
    write_value(len(keys), stream)
    for key in keys:
        write_value(key, stream)

    stream.seek(0)
    count = read_value(stream)
    assert count == 2
    assert [read_value(stream) for _ in range(count)] == keys


def test_truncated_input_raises_codec_error() -> None:
    data = encode_values(["truncated"])

    with pytest.raises(CodecError):
        decode_values(data[:-3])
    with pytest.raises(CodecError):
        read_value(io.BytesIO(b""))


def test_unknown_tag_raises_codec_error() -> None:
    with pytest.raises(CodecError, match="unknown value tag"):
        decode_values(b"\x7f")


def test_unsupported_type_raises_type_error() -> None:
    with pytest.raises(TypeError):
        encode_values([{"nested": True}])
