"""Console logging for Layer-Store.

Store loggers carry two extras: ``store`` (the store directory) and ``file``
(the on-disk file a message is about, when there is one). The console line
shows both, so interleaved output from several stores stays readable.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from threading import RLock
from typing import Any

from loguru import logger as _loguru_logger

LOG_MODES = {
    "warning": "WARNING",
    "info": "INFO",
    "debug": "DEBUG",
}
DEFAULT_LOG_MODE = "warning"
LOG_MODE_ENV = "LAYERSTORE_LOG_MODE"

_LOG_DOMAIN = "layerstore"
_lock = RLock()
_sink_id: int | None = None
_mode = DEFAULT_LOG_MODE


def _check_mode(mode: str) -> str:
    normalized = mode.strip().lower()
    if normalized not in LOG_MODES:
        valid = ", ".join(sorted(LOG_MODES))
        raise ValueError(f"Invalid log mode '{mode}'. Expected one of: {valid}")
    return normalized


def _mode_from_env() -> str:
    try:
        return _check_mode(os.getenv(LOG_MODE_ENV, DEFAULT_LOG_MODE))
    except ValueError:
        return DEFAULT_LOG_MODE


def _format(record: dict[str, Any]) -> str:
    extra = record["extra"]
    context = ""
    if extra.get("store"):
        context += " <cyan>[{extra[store]}]</cyan>"
    if extra.get("file"):
        context += " <magenta>{extra[file]}</magenta>"
    level = " <level>{level}</level>" if _mode == "debug" else ""
    return (
        "<green>{time:HH:mm:ss.SSS}</green> lstore" + level + context + ": "
        "<level>{message}</level>\n{exception}"
    )


def _is_store_record(record: dict[str, Any]) -> bool:
    return record["extra"].get("_domain") == _LOG_DOMAIN


def set_log_mode(mode: str) -> None:
    """(Re)install the console sink at the verbosity ``mode`` names."""

    global _sink_id, _mode
    normalized = _check_mode(mode)
    with _lock:
        if _sink_id is not None and _mode == normalized:
            return
        if _sink_id is None:
            # loguru's implicit handler would print every store message twice.
            try:
                _loguru_logger.remove(0)
            except ValueError:
                pass
        else:
            _loguru_logger.remove(_sink_id)
        _mode = normalized
        _sink_id = _loguru_logger.add(
            sys.stderr,
            format=_format,
            colorize=True,
            level=LOG_MODES[normalized],
            filter=_is_store_record,
        )


def configure_cli_logger(mode: str | None = None) -> None:
    set_log_mode(_mode_from_env() if mode is None else mode)


def get_log_mode() -> str:
    return _mode


def get_logger(
    logger: Any | None = None,
    *,
    store: str | Path | None = None,
    file: str | Path | None = None,
):
    """Return a logger bound to a store directory and, optionally, one of its files.

    Without ``logger`` the console sink is installed on first use at the level
    ``LAYERSTORE_LOG_MODE`` selects. A caller-supplied loguru logger is only
    bound; its handlers are left alone.
    """

    if logger is None:
        with _lock:
            if _sink_id is None:
                set_log_mode(_mode_from_env())
        logger = _loguru_logger

    extras: dict[str, Any] = {"_domain": _LOG_DOMAIN}
    if store is not None:
        extras["store"] = str(store)
    if file is not None:
        extras["file"] = Path(file).name
    return logger.bind(**extras)
