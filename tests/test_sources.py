from __future__ import annotations

import json
from pathlib import Path

import pytest

from layerstore.errors import ResourceNotFound
from layerstore.sources import FileSource, IterableSource, ResourceSource, resolve_source


def test_file_source_rereads_on_every_iteration(tmp_path) -> None:
    path = tmp_path / "defaults.json"
    path.write_text(json.dumps([{"name": "a"}]), encoding="utf-8")
    source = FileSource(path)

    assert [record["name"] for record in source] == ["a"]

    path.write_text(json.dumps([{"name": "a"}, {"name": "b"}]), encoding="utf-8")
    assert [record["name"] for record in source] == ["a", "b"]


def test_file_source_missing_file_raises_not_found(tmp_path) -> None:
    with pytest.raises(ResourceNotFound):
        list(FileSource(tmp_path / "missing.json"))


def test_resource_source_reads_bundled_defaults() -> None:
    source = ResourceSource("layerstore", "defaults/database_drivers.json")

    assert [record["name"] for record in source] == [
        "Oracle Thin Driver",
        "Derby Network Client",
        "SQL Server (jTDS)",
        "HSQLDB",
    ]


def test_resource_source_missing_resource_raises_not_found() -> None:
    with pytest.raises(ResourceNotFound):
        list(ResourceSource("layerstore", "defaults/nope.json"))


def test_iterable_source_hands_out_copies() -> None:
    source = IterableSource([{"name": "a", "tags": ["x"]}])

    first = next(iter(source))
    first["tags"].append("mutated")

    assert next(iter(source)) == {"name": "a", "tags": ["x"]}
    assert len(source) == 1


def test_resolve_source_variants(tmp_path) -> None:
    path = tmp_path / "defaults.json"
    path.write_text("[]", encoding="utf-8")
    records = [{"name": "a"}]

    assert resolve_source(None) is None
    assert resolve_source("  ") is None
    assert resolve_source(records) is records

    resource = resolve_source("layerstore:defaults/database_drivers.json")
    assert isinstance(resource, ResourceSource)
    assert resource.package == "layerstore"
    assert resource.name == "defaults/database_drivers.json"

    from_str = resolve_source(str(path))
    assert isinstance(from_str, FileSource)
    assert from_str.path == path

    from_path = resolve_source(Path(path))
    assert isinstance(from_path, FileSource)
