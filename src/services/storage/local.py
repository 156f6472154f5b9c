"""
Local Storage Implementations

Two backends live here:
- InMemoryKeyValueStorage: a dict, for tests and throwaway sessions
- JsonFileKeyValueStorage: a single JSON file on disk, the default

The JSON file holds one object mapping slot names to values. Every write
rewrites the whole file through a temp file and an atomic rename, so a
crash mid-write leaves either the old file or the new one, never half.
"""

import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from src.services.storage.interface import (
    CorruptRecordError,
    KeyValueStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class InMemoryKeyValueStorage(KeyValueStorageInterface):
    """
    Dict-backed storage.

    Values are deep-copied on the way in and out so callers cannot
    mutate stored state by accident.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        return True


class JsonFileKeyValueStorage(KeyValueStorageInterface):
    """
    Key-value storage in a local JSON file.

    The file is read once and cached. A missing file is an empty store.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path).expanduser()
        self._cache: Optional[dict[str, Any]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if self._cache is not None:
            return self._cache

        if not self._path.exists():
            self._cache = {}
            return self._cache

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

        if not text.strip():
            self._cache = {}
            return self._cache

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            backup = self._quarantine()
            raise CorruptRecordError(
                f"{self._path} is not valid JSON: {e}", backup_key=backup
            )

        if not isinstance(data, dict):
            backup = self._quarantine()
            raise CorruptRecordError(
                f"{self._path} must hold a JSON object, found {type(data).__name__}",
                backup_key=backup,
            )

        self._cache = data
        return self._cache

    def _quarantine(self) -> str:
        """Move an unreadable file aside so later writes start from empty."""
        backup = self._path.with_name(self._path.name + ".corrupt")
        try:
            os.replace(self._path, backup)
        except OSError as e:
            raise StorageError(f"Failed to move corrupt {self._path} aside: {e}")
        logger.error("storage_file_corrupt", path=str(self._path), backup=str(backup))
        return str(backup)

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                dir=self._path.parent,
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, ensure_ascii=False, allow_nan=False)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

        self._cache = data
        logger.debug("storage_file_written", path=str(self._path), keys=len(data))

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._read().get(key))

    def set(self, key: str, value: Any) -> None:
        data = dict(self._read())
        data[key] = copy.deepcopy(value)
        self._write(data)

    def delete(self, key: str) -> bool:
        data = dict(self._read())
        if key not in data:
            return False
        del data[key]
        self._write(data)
        return True
