from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Iterator

from .errors import ResourceNotFound, StorageError
from .logging import get_logger

_TEMP_SUFFIX = ".tmp"
_BACKUP_SUFFIX = ".old"


def _sibling_paths(path: Path) -> tuple[Path, Path]:
    name = path.name
    dot = name.find(".")
    root = name[:dot] if dot > 0 else name
    return (
        path.with_name(root + _TEMP_SUFFIX),
        path.with_name(root + _BACKUP_SUFFIX),
    )


class AtomicFile:
    """One logical file kept as ``main``, ``.tmp`` staging and ``.old`` backup.

    Writers only ever touch the staging file. Committing swaps it in with two
    renames, so a reader sees either the previous or the new content through
    ``open_read`` but never a partial write. A reader that already holds the
    old main open keeps reading the old content after the swap.
    """

    def __init__(self, path: str | Path, *, logger: Any | None = None) -> None:
        self._path = Path(path)
        self._temp_path, self._backup_path = _sibling_paths(self._path)
        self._logger = get_logger(logger, store=self._path.parent, file=self._path)
        self.recover()

    @classmethod
    def in_directory(
        cls,
        directory: str | Path,
        filename: str,
        *,
        logger: Any | None = None,
    ) -> "AtomicFile":
        return cls(Path(directory) / filename, logger=logger)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def temp_path(self) -> Path:
        return self._temp_path

    @property
    def backup_path(self) -> Path:
        return self._backup_path

    def exists(self) -> bool:
        return self._path.exists()

    def recover(self) -> bool:
        """Restore the backup when a crash left no main file behind."""

        if self._path.exists() or not self._backup_path.exists():
            return False
        try:
            os.replace(self._backup_path, self._path)
        except OSError as exc:
            raise StorageError(
                self._path,
                f"cannot restore '{self._path}' from backup '{self._backup_path}': {exc}",
            ) from exc
        self._logger.warning("restored from backup {}", self._backup_path.name)
        return True

    def open_read(self) -> BinaryIO:
        try:
            return open(self._path, "rb")
        except FileNotFoundError as exc:
            raise ResourceNotFound(self._path) from exc
        except OSError as exc:
            raise StorageError(self._path, f"cannot read '{self._path}': {exc}") from exc

    @contextmanager
    def open_write(self, *, fsync: bool = False) -> Iterator[BinaryIO]:
        """Yield a writer on the staging file; commit it when the block exits.

        If the block raises, the staging file is discarded and the committed
        main file is left as it was.
        """

        try:
            fp = open(self._temp_path, "wb")
        except OSError as exc:
            raise StorageError(
                self._temp_path,
                f"cannot open staging file '{self._temp_path}': {exc}",
            ) from exc

        try:
            with fp:
                yield fp
                fp.flush()
                if fsync:
                    os.fsync(fp.fileno())
        except OSError as exc:
            self._discard_staging()
            raise StorageError(
                self._temp_path,
                f"cannot write staging file '{self._temp_path}': {exc}",
            ) from exc
        except BaseException:
            self._discard_staging()
            raise

        self._commit()

    def _discard_staging(self) -> None:
        try:
            self._temp_path.unlink()
        except FileNotFoundError:
            pass

    def _commit(self) -> None:
        try:
            try:
                self._backup_path.unlink()
            except FileNotFoundError:
                pass
            if self._path.exists():
                os.replace(self._path, self._backup_path)
            os.replace(self._temp_path, self._path)
        except OSError as exc:
            raise StorageError(
                self._path,
                f"cannot commit '{self._temp_path}' to '{self._path}': {exc}",
            ) from exc
        self._logger.debug("committed staging file {}", self._temp_path.name)


def atomic_write_bytes(
    path: str | Path,
    payload: bytes,
    *,
    fsync: bool = False,
    temp_prefix: str | None = None,
) -> None:
    """Replace ``path`` with ``payload`` through a private temp file beside it.

    No backup is kept and no sibling files are touched.
    """

    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        prefix = temp_prefix if temp_prefix is not None else f".{target.name}."
        fd, temp_name = tempfile.mkstemp(prefix=prefix, suffix=".tmp", dir=str(target.parent))
    except OSError as exc:
        raise StorageError(target, f"cannot stage write for '{target}': {exc}") from exc

    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as fp:
            fp.write(payload)
            fp.flush()
            if fsync:
                os.fsync(fp.fileno())
        os.replace(temp_name, target)
    except BaseException as exc:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        if isinstance(exc, OSError):
            raise StorageError(target, f"cannot write '{target}': {exc}") from exc
        raise
