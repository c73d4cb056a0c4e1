from __future__ import annotations

import io
import json
from collections.abc import Mapping
from typing import IO, Any, Iterable

from .errors import RecordFormatError

Record = dict[str, Any]


def load_records(stream: IO[str], *, source: str = "<stream>") -> list[Record]:
    """Parse a JSON array of objects into records."""

    try:
        raw = json.load(stream)
    except ValueError as exc:
        raise RecordFormatError(source, f"invalid record file '{source}': {exc}") from exc
    if not isinstance(raw, list):
        raise RecordFormatError(source, f"record file '{source}' must contain a JSON array")

    records: list[Record] = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise RecordFormatError(
                source,
                f"record file '{source}' entry {index} must be an object, got {type(item).__name__}",
            )
        records.append(dict(item))
    return records


class RecordWriter:
    """Stream records into a text file as a JSON array."""

    def __init__(self, stream: IO[str], *, indent: int | None = 2) -> None:
        self._stream = stream
        self._indent = indent
        self._count = 0
        self._closed = False
        self._stream.write("[")

    @property
    def count(self) -> int:
        return self._count

    def write(self, record: Mapping[str, Any]) -> None:
        if self._closed:
            raise ValueError("cannot write to a closed RecordWriter")
        payload = json.dumps(dict(record), ensure_ascii=False, indent=self._indent)
        if self._indent is not None:
            payload = payload.replace("\n", "\n" + " " * self._indent)
            prefix = "\n" + " " * self._indent
        else:
            prefix = ""
        self._stream.write(("," if self._count else "") + prefix + payload)
        self._count += 1

    def close(self) -> None:
        if self._closed:
            return
        self._stream.write("\n]\n" if self._count and self._indent is not None else "]\n")
        self._stream.flush()
        self._closed = True

    def __enter__(self) -> "RecordWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()


def dump_records(records: Iterable[Mapping[str, Any]], *, indent: int | None = 2) -> str:
    buffer = io.StringIO()
    with RecordWriter(buffer, indent=indent) as writer:
        for record in records:
            writer.write(record)
    return buffer.getvalue()
