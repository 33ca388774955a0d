"""Services package."""

from fintrack.services.storage import (
    DuplicateError,
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    NotFoundError,
    PersistenceError,
    StorageError,
)

__all__ = [
    "DuplicateError",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "NotFoundError",
    "PersistenceError",
    "StorageError",
]
