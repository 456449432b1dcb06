"""
JSON File Storage

One ``<key>.json`` file per logical key inside a data directory.

FEATURES:
- Atomic writes (temp file + os.replace), so a crash never leaves half a file
- Retry logic for transient I/O errors (tenacity)
- Corrupted files read as "absent" so the stores can fall back to defaults

IMPORTANT: This backend does no locking. Two processes writing the same
key race and the last write wins.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_ledger.config import get_settings
from budget_ledger.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
    StorageUnavailableError,
)


logger = structlog.get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,63}$")


class JsonFileStorage(KeyValueStorageInterface):
    """File-backed storage. Each key is one pretty-printed JSON file."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        write_attempts: Optional[int] = None,
    ):
        settings = get_settings().storage
        self._data_dir = Path(data_dir or settings.data_dir)
        self._write_attempts = write_attempts or settings.write_attempts

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key or ""):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None

        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError) as e:
            logger.warning(
                "storage_read_failed",
                key=key,
                path=str(path),
                error=str(e),
            )
            return None

    def _write_atomic(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            text = json.dumps(value, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON serializable: {e}")

        retryer = Retrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OSError),
        )
        try:
            retryer(self._write_atomic, path, text)
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.error(
                "storage_write_failed",
                key=key,
                path=str(path),
                attempts=self._write_attempts,
                error=str(cause),
            )
            raise StorageError(f"Failed to write '{key}': {cause}")

        logger.debug("storage_write", key=key, bytes=len(text))

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove '{key}': {e}")

    def is_available(self) -> bool:
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self.set("storage_probe", "probe")
            self.remove("storage_probe")
        except (OSError, StorageError):
            return False
        return True

    def ensure_available(self) -> None:
        """
        Raises:
            StorageUnavailableError: If the data directory is not writable
        """
        if not self.is_available():
            raise StorageUnavailableError(
                f"Data directory {self._data_dir} is not writable"
            )
