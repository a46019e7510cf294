"""
Key-Value Store Implementations

DESIGN DECISION: The app persists everything as JSON strings under a handful
of keys, the same way a mobile app would use its preferences store.
Two backends are provided:
- InMemoryKeyValueStore: tests and throwaway sessions
- JsonFileKeyValueStore: a single JSON document on disk

File writes go to a temporary file that is then renamed over the target,
so a crash mid-write never leaves a half-written document behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.services.storage.interface import KeyValueStore, StorageError


logger = structlog.get_logger(__name__)


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store backed by one JSON object on disk.

    The document is read once, lazily, and kept in memory; every write
    rewrites the whole file. This is fine for a household's data volume.
    """

    def __init__(self, path: Union[str, Path], write_attempts: int = 3):
        self._path = Path(path).expanduser()
        self._write_attempts = write_attempts
        self._data: Optional[dict[str, str]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data

        if not self._path.exists():
            self._data = {}
            return self._data

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            # Unreadable document: start empty instead of failing every read
            logger.warning(
                "kv_store_load_failed",
                path=str(self._path),
                error=str(e),
            )
            raw = {}

        if not isinstance(raw, dict):
            logger.warning("kv_store_unexpected_root", path=str(self._path))
            raw = {}

        self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        return self._data

    def _flush(self, data: dict[str, str]) -> None:
        attempt_write = retry(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )(self._write_document)

        try:
            attempt_write(data)
        except OSError as e:
            logger.error("kv_store_write_failed", path=str(self._path), error=str(e))
            raise StorageError(f"Failed to write {self._path}: {e}") from e

    def _write_document(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self._path.parent),
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(data, fp, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = dict(self._load())
        data[key] = value
        self._commit(data)

    def delete(self, key: str) -> None:
        data = dict(self._load())
        if key in data:
            del data[key]
            self._commit(data)

    def keys(self) -> list[str]:
        return list(self._load())

    def _commit(self, data: dict[str, str]) -> None:
        # The cache only changes once the document is on disk
        self._flush(data)
        self._data = data
