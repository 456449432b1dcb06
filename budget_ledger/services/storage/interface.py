"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract key/value interface for persistence.
This allows us to:
1. Keep the stores free of any file-system or browser detail
2. Use in-memory storage for testing (including simulated quota failures)
3. Swap the JSON file backend for something else later

The interface is intentionally tiny - one JSON document per logical key.
Stores do their own read-modify-write on top of it.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from budget_ledger.errors import PersistenceError


class StorageKeys:
    """Logical keys, one per store."""
    TRANSACTIONS = "transactions"
    PREFERENCES = "preferences"
    CATEGORIES = "categories"
    BUDGETS = "budgets"
    LEGACY_BUDGET = "budget"

    ALL = (TRANSACTIONS, PREFERENCES, CATEGORIES, BUDGETS, LEGACY_BUDGET)


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for JSON document storage.

    Any backend must implement these methods. Values are plain JSON
    data (dicts, lists, strings, numbers, booleans, None).
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Read the document stored under ``key``.

        Returns:
            The decoded value, or None if absent or unreadable.
            Never raises for corrupted content.
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Replace the document stored under ``key``.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """
        Delete ``key``. Removing an absent key is not an error.

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """True if a test write/remove round-trip succeeds."""
        pass

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear_all(self) -> list[str]:
        """
        Remove every logical key, the legacy budget blob included.

        Returns:
            The keys that were removed

        Raises:
            StorageError: If a delete fails
        """
        for key in StorageKeys.ALL:
            self.remove(key)
        return list(StorageKeys.ALL)


class StorageError(PersistenceError):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """The storage backend cannot be used at all (disabled, unwritable)."""
    pass
