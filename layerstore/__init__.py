from __future__ import annotations

from .codec import decode_values, encode_values, read_value, write_value
from .errors import (
    CodecError,
    InvalidDefaultData,
    RecordFormatError,
    ResourceNotFound,
    StorageError,
    StoreError,
)
from .io_utils import AtomicFile, atomic_write_bytes
from .logging import configure_cli_logger, get_log_mode, get_logger, set_log_mode
from .records import RecordWriter, dump_records, load_records
from .settings import get_default_source, get_primary_key, get_store_directory, open_store
from .sources import FileSource, IterableSource, ResourceSource, resolve_source
from .store import LayeredRecordStore, StoreState

__all__ = [
    "AtomicFile",
    "atomic_write_bytes",
    "LayeredRecordStore",
    "StoreState",
    "open_store",
    "get_store_directory",
    "get_default_source",
    "get_primary_key",
    "FileSource",
    "IterableSource",
    "ResourceSource",
    "resolve_source",
    "RecordWriter",
    "load_records",
    "dump_records",
    "read_value",
    "write_value",
    "encode_values",
    "decode_values",
    "StoreError",
    "ResourceNotFound",
    "StorageError",
    "InvalidDefaultData",
    "RecordFormatError",
    "CodecError",
    "get_logger",
    "set_log_mode",
    "get_log_mode",
    "configure_cli_logger",
]
