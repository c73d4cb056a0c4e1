from __future__ import annotations

import enum
import io
from collections.abc import Mapping
from itertools import chain
from pathlib import Path
from typing import Any, Iterable, Iterator

from .codec import read_value, write_value
from .errors import CodecError, InvalidDefaultData, StorageError
from .io_utils import AtomicFile
from .logging import get_logger
from .records import Record, RecordWriter, load_records

DATA_FILENAME = "config.json"
DELETED_FILENAME = "deleted.idx"

_MISSING = object()


class StoreState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


def _key_matches(candidate: Any, key: Any) -> bool:
    if key is None or candidate is None:
        return False
    if isinstance(candidate, bool) != isinstance(key, bool):
        return False
    return candidate == key


def _index_contains(index: Iterable[Any], key: Any) -> bool:
    return any(_key_matches(item, key) for item in index)


class LayeredRecordStore:
    """Records keyed by ``primary_key``, layered over an optional default set.

    Iteration yields the default records that have not been deleted or
    overridden, in source order, followed by the user's own records in file
    order. The default source is never written to: deleting or overriding a
    default record adds its key to the tombstone index (``deleted.idx``),
    and user records live in ``config.json``. Both files are replaced
    atomically on every change.

    The default and tombstone indexes are loaded on the first read or
    mutation and kept for the lifetime of the instance. The store assumes a
    single writer.
    """

    def __init__(
        self,
        directory: str | Path,
        source: Iterable[Mapping[str, Any]] | None = None,
        primary_key: str = "name",
        *,
        logger: Any | None = None,
    ) -> None:
        self._directory = Path(directory).expanduser()
        self._source = source
        self._primary_key = primary_key
        self._logger = get_logger(logger, store=self._directory)

        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                self._directory,
                f"cannot create store directory '{self._directory}': {exc}",
            ) from exc

        self._data = AtomicFile.in_directory(self._directory, DATA_FILENAME, logger=logger)
        self._deleted = AtomicFile.in_directory(self._directory, DELETED_FILENAME, logger=logger)

        self._state = StoreState.UNINITIALIZED
        self._default_index: list[Any] = []
        self._deleted_index: list[Any] = []

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def source(self) -> Iterable[Mapping[str, Any]] | None:
        return self._source

    @property
    def primary_key(self) -> str:
        return self._primary_key

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def data_file(self) -> AtomicFile:
        return self._data

    @property
    def deleted_file(self) -> AtomicFile:
        return self._deleted

    def _init(self) -> None:
        if self._state is StoreState.INITIALIZED:
            return
        default_index = self._build_default_index()
        deleted_index = self._load_deleted_index()

        stale = [key for key in deleted_index if not _index_contains(default_index, key)]
        if stale:
            self._logger.debug("tombstones without a default record: {}", stale)

        self._default_index = default_index
        self._deleted_index = deleted_index
        self._state = StoreState.INITIALIZED

    def _build_default_index(self) -> list[Any]:
        index: list[Any] = []
        if self._source is None:
            return index

        for record in self._source:
            value = record.get(self._primary_key)
            if value is None:
                raise InvalidDefaultData(self._primary_key, record)
            if _index_contains(index, value):
                self._logger.warning("duplicate default key {!r}", value)
            index.append(value)
        return index

    def _load_deleted_index(self) -> list[Any]:
        if not self._deleted.exists():
            return []

        with self._deleted.open_read() as fp:
            count = read_value(fp)
            if not isinstance(count, int) or isinstance(count, bool) or count < 0:
                raise CodecError(f"invalid tombstone count {count!r} in '{self._deleted.path}'")
            return [read_value(fp) for _ in range(count)]

    def _write_deleted_index(self, keys: list[Any]) -> None:
        with self._deleted.open_write() as fp:
            write_value(len(keys), fp)
            for key in keys:
                write_value(key, fp)

    def _filtered_defaults(self) -> Iterator[Record]:
        for record in self._source:
            if not _index_contains(self._deleted_index, record.get(self._primary_key)):
                yield dict(record)

    def _live_records(self) -> Iterator[Record]:
        if not self._data.exists():
            return
        with self._data.open_read() as fp, io.TextIOWrapper(fp, encoding="utf-8") as text:
            records = load_records(text, source=str(self._data.path))
        yield from records

    def _rewrite_live(self, key: Any, replacement: Mapping[str, Any] | None = None) -> int:
        """Rewrite the live file without ``key``; append ``replacement`` last."""

        # Materialize first so the read handle is closed before the swap.
        existing = list(self._live_records())
        removed = 0
        with self._data.open_write() as fp:
            text = io.TextIOWrapper(fp, encoding="utf-8", newline="\n")
            writer = RecordWriter(text)
            for record in existing:
                if _key_matches(record.get(self._primary_key), key):
                    removed += 1
                    continue
                writer.write(record)
            if replacement is not None:
                writer.write(replacement)
            writer.close()
            text.detach()
        return removed

    def __iter__(self) -> Iterator[Record]:
        self._init()
        if self._source is not None:
            return chain(self._filtered_defaults(), self._live_records())
        return self._live_records()

    def records(self) -> list[Record]:
        return list(self)

    def keys(self) -> list[Any]:
        return [record.get(self._primary_key) for record in self]

    def get(self, key: Any, default: Any = None) -> Any:
        for record in self:
            if _key_matches(record.get(self._primary_key), key):
                return record
        return default

    def __contains__(self, key: Any) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def default_keys(self) -> list[Any]:
        self._init()
        return list(self._default_index)

    def deleted_keys(self) -> list[Any]:
        self._init()
        return list(self._deleted_index)

    def is_deleted(self, key: Any) -> bool:
        """Whether ``key`` is a default record hidden by the tombstone index."""

        self._init()
        return _index_contains(self._deleted_index, key)

    def delete(self, key: Any) -> None:
        """Remove ``key`` from the merged view.

        A default record is hidden by recording its key in the tombstone
        index; a user record is dropped from the live file. Unknown keys are
        ignored.
        """

        self._init()

        if _index_contains(self._default_index, key) and not _index_contains(self._deleted_index, key):
            updated = self._deleted_index + [key]
            self._write_deleted_index(updated)
            self._deleted_index = updated
            self._logger.info("tombstoned default record {!r}", key)

        if not self._data.exists():
            return

        removed = self._rewrite_live(key)
        if removed:
            self._logger.info("deleted record {!r}", key)

    def delete_record(self, record: Mapping[str, Any]) -> None:
        self.delete(record.get(self._primary_key))

    def insert(self, record: Mapping[str, Any]) -> None:
        """Insert or replace a record; it always ends up last in the view."""

        if not isinstance(record, Mapping):
            raise TypeError(f"record must be a mapping, got {type(record).__name__}")
        key = record.get(self._primary_key)

        self._init()

        if _index_contains(self._default_index, key) and not _index_contains(self._deleted_index, key):
            self.delete(key)

        removed = self._rewrite_live(key, replacement=dict(record))
        self._logger.info("{} record {!r}", "updated" if removed else "inserted", key)
