"""
Storage Services Package

Provides the abstract key/value interface and concrete backends.
JSON files are the default backend; the in-memory backend serves tests.
"""

from budget_ledger.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
    StorageKeys,
    StorageUnavailableError,
)
from budget_ledger.services.storage.json_file import JsonFileStorage
from budget_ledger.services.storage.memory import InMemoryStorage

__all__ = [
    # Interface
    "KeyValueStorageInterface",
    "StorageKeys",
    # Exceptions
    "StorageError",
    "StorageUnavailableError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
]
