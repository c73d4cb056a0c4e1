from __future__ import annotations

import io
import json

import pytest

from layerstore.errors import RecordFormatError
from layerstore.records import RecordWriter, dump_records, load_records


def test_load_records_preserves_order_and_fields() -> None:
    raw = '[{"name": "b", "port": 2}, {"name": "a", "nested": {"x": [1, 2]}}]'

    records = load_records(io.StringIO(raw))

    assert [record["name"] for record in records] == ["b", "a"]
    assert list(records[0].keys()) == ["name", "port"]
    assert records[1]["nested"] == {"x": [1, 2]}


@pytest.mark.parametrize(
    "raw",
    [
        '{"name": "not a list"}',
        '[{"name": "ok"}, "not an object"]',
        '[{"name": "broken"',
    ],
)
def test_load_records_rejects_malformed_files(raw) -> None:
    with pytest.raises(RecordFormatError):
        load_records(io.StringIO(raw), source="broken.json")


def test_record_writer_streams_a_json_array() -> None:
    buffer = io.StringIO()
    with RecordWriter(buffer) as writer:
        writer.write({"name": "one"})
        writer.write({"name": "two", "port": 5})

    assert writer.count == 2
    assert json.loads(buffer.getvalue()) == [{"name": "one"}, {"name": "two", "port": 5}]


def test_empty_rewrite_produces_empty_array() -> None:
    assert dump_records([]) == "[]\n"
    assert dump_records([], indent=None) == "[]\n"
    assert json.loads(dump_records([{"a": 1}, {"b": 2}], indent=None)) == [{"a": 1}, {"b": 2}]


def test_writer_refuses_writes_after_close() -> None:
    writer = RecordWriter(io.StringIO())
    writer.close()

    with pytest.raises(ValueError):
        writer.write({"name": "late"})
