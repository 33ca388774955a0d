"""
Storage Services Package

Provides the abstract key-value interface and the on-device implementations.
"""

from fintrack.services.storage.interface import (
    DuplicateError,
    KeyValueStore,
    NotFoundError,
    PersistenceError,
    StorageError,
)
from fintrack.services.storage.local import (
    InMemoryStore,
    JsonFileStore,
)

__all__ = [
    # Interfaces
    "KeyValueStore",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "PersistenceError",
    "StorageError",
    # Implementations
    "InMemoryStore",
    "JsonFileStore",
]
