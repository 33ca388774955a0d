"""
On-device Storage

Two implementations of the key-value medium:

- JsonFileStore: one file per key in a local directory. Writes go to a
  temporary file first and are moved into place, so a crash never leaves a
  half-written collection behind. Transient write errors are retried.
- InMemoryStore: a dict, for tests and throwaway sessions.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fintrack.config import get_settings
from fintrack.services.storage.interface import KeyValueStore, PersistenceError


logger = structlog.get_logger(__name__)


class JsonFileStore(KeyValueStore):
    """
    Directory-backed key-value store.

    Each key maps to `<data_dir>/<key>.json`.
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        write_attempts: Optional[int] = None,
        retry_wait_seconds: float = 0.2,
    ):
        settings = None
        if data_dir is None or write_attempts is None:
            settings = get_settings().storage
        self._data_dir = Path(data_dir) if data_dir is not None else settings.data_dir
        attempts = write_attempts if write_attempts is not None else settings.write_attempts

        self._write_with_retry = retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=retry_wait_seconds, max=5),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )(self._write)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        return self._data_dir / f"{key}.json"

    def load(self, key: str) -> Optional[str]:
        """Read a slot. A missing file means the key is absent."""
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(key, f"Failed to read {path}: {e}")

    def save(self, key: str, value: str) -> None:
        """Atomically replace a slot, retrying transient failures."""
        try:
            self._write_with_retry(key, value)
        except OSError as e:
            raise PersistenceError(key, f"Failed to write {self._path(key)}: {e}")

    def _write(self, key: str, value: str) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._data_dir, prefix=f".{key}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, self._path(key))
        except OSError:
            logger.warning("storage_write_retry", key=key)
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


class InMemoryStore(KeyValueStore):
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def save(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)
