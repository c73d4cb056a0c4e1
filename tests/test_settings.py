from __future__ import annotations

from pathlib import Path

from layerstore.settings import (
    get_default_source,
    get_primary_key,
    get_store_directory,
    open_store,
)
from layerstore.sources import FileSource, ResourceSource


def test_store_directory_resolution_order(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("LAYERSTORE_DIR", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))

    assert get_store_directory() == tmp_path / "home" / ".layerstore" / "store"

    monkeypatch.setenv("LAYERSTORE_DIR", str(tmp_path / "from-env"))
    assert get_store_directory() == tmp_path / "from-env"
    assert get_store_directory(tmp_path / "explicit") == tmp_path / "explicit"


def test_primary_key_and_defaults_resolution(monkeypatch) -> None:
    monkeypatch.delenv("LAYERSTORE_PRIMARY_KEY", raising=False)
    monkeypatch.delenv("LAYERSTORE_DEFAULTS", raising=False)

    assert get_primary_key() == "name"
    assert get_default_source() is None

    monkeypatch.setenv("LAYERSTORE_PRIMARY_KEY", " id ")
    monkeypatch.setenv("LAYERSTORE_DEFAULTS", "layerstore:defaults/database_drivers.json")
    assert get_primary_key() == "id"
    assert get_primary_key("code") == "code"
    assert get_default_source() == "layerstore:defaults/database_drivers.json"
    assert get_default_source("./other.json") == "./other.json"


def test_open_store_uses_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("LAYERSTORE_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("LAYERSTORE_DEFAULTS", "layerstore:defaults/database_drivers.json")
    monkeypatch.delenv("LAYERSTORE_PRIMARY_KEY", raising=False)

    store = open_store()

    assert store.directory == tmp_path / "store"
    assert isinstance(store.source, ResourceSource)
    assert store.primary_key == "name"
    assert store.keys()[0] == "Oracle Thin Driver"


def test_open_store_explicit_arguments_win(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("LAYERSTORE_DEFAULTS", "layerstore:defaults/database_drivers.json")
    defaults = tmp_path / "defaults.json"
    defaults.write_text('[{"id": "x"}]', encoding="utf-8")

    store = open_store(tmp_path / "explicit", str(defaults), "id")

    assert isinstance(store.source, FileSource)
    assert store.keys() == ["x"]

    in_memory = open_store(Path(tmp_path / "mem"), [{"id": "y"}], "id")
    assert in_memory.keys() == ["y"]
