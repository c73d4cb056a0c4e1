from __future__ import annotations

import copy
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Iterator

from .errors import ResourceNotFound, StorageError
from .records import Record, load_records

_RESOURCE_SEPARATOR = ":"


class FileSource:
    """Default records read from a JSON file, re-read on every iteration."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def __iter__(self) -> Iterator[Record]:
        try:
            with open(self.path, encoding="utf-8") as fp:
                records = load_records(fp, source=str(self.path))
        except FileNotFoundError as exc:
            raise ResourceNotFound(self.path) from exc
        except OSError as exc:
            raise StorageError(self.path, f"cannot read '{self.path}': {exc}") from exc
        return iter(records)

    def __repr__(self) -> str:
        return f"FileSource({str(self.path)!r})"


class ResourceSource:
    """Default records bundled as package data."""

    def __init__(self, package: str, name: str) -> None:
        self.package = package
        self.name = name

    def __iter__(self) -> Iterator[Record]:
        resource = resources.files(self.package).joinpath(self.name)
        label = f"{self.package}{_RESOURCE_SEPARATOR}{self.name}"
        if not resource.is_file():
            raise ResourceNotFound(label)
        with resource.open("r", encoding="utf-8") as fp:
            records = load_records(fp, source=label)
        return iter(records)

    def __repr__(self) -> str:
        return f"ResourceSource({self.package!r}, {self.name!r})"


class IterableSource:
    """Default records held in memory; each iteration yields fresh copies."""

    def __init__(self, records: Iterable[Mapping[str, Any]]) -> None:
        self._records = [dict(record) for record in records]

    def __iter__(self) -> Iterator[Record]:
        return iter(copy.deepcopy(self._records))

    def __len__(self) -> int:
        return len(self._records)


def resolve_source(value: Any) -> Any:
    """Turn a CLI/env style source description into a default source.

    ``None`` means no defaults, ``"package:path/in/package.json"`` a bundled
    resource, and anything else a file path. Objects that are already
    iterable sources are returned unchanged.
    """

    if value is None:
        return None
    if isinstance(value, Path):
        return FileSource(value)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        package, sep, name = raw.partition(_RESOURCE_SEPARATOR)
        if sep and len(package) > 1 and name and not Path(raw).exists():
            return ResourceSource(package, name)
        return FileSource(raw)
    return value
