"""
In-Memory Storage

Used by the test suite and by callers that want a throwaway dataset.
Values are kept JSON-encoded so that reads always return fresh copies,
exactly like the file backend.
"""

import json
from typing import Any, Optional

from budget_ledger.services.storage.interface import KeyValueStorageInterface, StorageError


class InMemoryStorage(KeyValueStorageInterface):
    """
    Dict-backed storage with optional write-failure injection.

    Set ``fail_writes = True`` (or add keys to ``failing_keys``) to make
    ``set``/``remove`` raise StorageError, simulating a full or disabled
    storage quota.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, str] = {}
        self.fail_writes = False
        self.failing_keys: set[str] = set()
        self.write_count = 0
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    def _check_writable(self, key: str) -> None:
        if self.fail_writes or key in self.failing_keys:
            raise StorageError(f"Storage quota exceeded while writing '{key}'")

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    def set(self, key: str, value: Any) -> None:
        self._check_writable(key)
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON serializable: {e}")
        self.write_count += 1

    def set_raw(self, key: str, text: str) -> None:
        """Store raw text, bypassing JSON encoding (for corruption tests)."""
        self._data[key] = text

    def remove(self, key: str) -> None:
        self._check_writable(key)
        self._data.pop(key, None)

    def is_available(self) -> bool:
        return not self.fail_writes

    def keys(self) -> list[str]:
        return sorted(self._data)
