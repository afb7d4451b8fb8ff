"""File-based persistence backend: JSON files under a local directory."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Mapping

from portfolio_ai.exceptions import PersistenceError

log = logging.getLogger(__name__)

_SUFFIX = ".json"


class FilePersistenceBackend:
    """Stores each key as ``<base>/<key>.json``; ``/`` in keys become directories.

    Writes go to a temp file in the target directory followed by
    ``os.replace`` so a reader never observes a half-written record.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    def _key_path(self, key: str) -> Path:
        parts = [p for p in key.replace("\\", "/").split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise PersistenceError(f"Invalid key: {key!r}")
        return self._base.joinpath(*parts[:-1], parts[-1] + _SUFFIX)

    def _write(self, path: Path, data: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(data)
            os.replace(tmp, path)
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write {path}: {e}") from e

    def save(self, key: str, data: str) -> None:
        path = self._key_path(key)
        self._write(path, data)
        log.debug("Saved %s to %s", key, path)

    def save_many(self, items: Mapping[str, str]) -> None:
        # resolve every path first so a bad key aborts before anything is written
        paths = [(self._key_path(key), data) for key, data in items.items()]
        for path, data in paths:
            self._write(path, data)
        log.debug("Saved %d keys under %s", len(paths), self._base)

    def load(self, key: str) -> str:
        path = self._key_path(key)
        if not path.is_file():
            raise KeyError(f"Not found: {key} (path: {path})")
        return path.read_text(encoding="utf-8")

    def exists(self, key: str) -> bool:
        return self._key_path(key).is_file()

    def delete(self, key: str) -> None:
        path = self._key_path(key)
        if path.is_file():
            path.unlink()

    def list_keys(self, prefix: str = "") -> list[str]:
        keys = []
        for path in self._base.rglob(f"*{_SUFFIX}"):
            if path.name.startswith(".tmp-"):
                continue
            key = path.relative_to(self._base).with_suffix("").as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)
