from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from .sources import resolve_source
from .store import LayeredRecordStore

_ENV_STORE_DIR = "LAYERSTORE_DIR"
_ENV_DEFAULTS = "LAYERSTORE_DEFAULTS"
_ENV_PRIMARY_KEY = "LAYERSTORE_PRIMARY_KEY"
_DEFAULT_PRIMARY_KEY = "name"


def get_store_directory(directory: str | Path | None = None) -> Path:
    """Return the store directory: argument, then env, then ~/.layerstore/store."""

    if directory:
        return Path(directory).expanduser()
    raw = os.getenv(_ENV_STORE_DIR)
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".layerstore" / "store"


def get_default_source(source: str | None = None) -> str | None:
    if source:
        return source
    raw = os.getenv(_ENV_DEFAULTS, "").strip()
    return raw or None


def get_primary_key(primary_key: str | None = None) -> str:
    if primary_key and primary_key.strip():
        return primary_key.strip()
    raw = os.getenv(_ENV_PRIMARY_KEY, "").strip()
    return raw or _DEFAULT_PRIMARY_KEY


def open_store(
    directory: str | Path | None = None,
    source: Any = None,
    primary_key: str | None = None,
    *,
    logger: Any | None = None,
) -> LayeredRecordStore:
    """Build a store from explicit arguments, falling back to environment settings."""

    if source is None or isinstance(source, str):
        source = get_default_source(source)
    return LayeredRecordStore(
        get_store_directory(directory),
        resolve_source(source),
        get_primary_key(primary_key),
        logger=logger,
    )
