from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping


class StoreError(Exception):
    """Base class for all Layer-Store errors."""


class ResourceNotFound(StoreError):
    """Raised when reading a resource that does not exist."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        super().__init__(f"Resource '{self.path}' was not found.")


class StorageError(StoreError):
    """Raised when a filesystem operation on a store file fails."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = str(path)
        super().__init__(message)


class InvalidDefaultData(StoreError):
    """Raised when a default record has no primary key value."""

    def __init__(self, primary_key: str, record: Mapping[str, Any]) -> None:
        self.primary_key = primary_key
        self.record = dict(record)
        super().__init__(
            f"Default source contains a record with null primary key '{primary_key}': {self.record!r}"
        )


class RecordFormatError(StoreError):
    """Raised when a record file cannot be parsed."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(message)


class CodecError(StoreError):
    """Raised when binary encoded values are corrupt or truncated."""
