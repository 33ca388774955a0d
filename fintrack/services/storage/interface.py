"""
Abstract Storage Interface

DESIGN DECISION: The ledger talks to its persistence medium through a
deliberately tiny key-value contract: load(key) and save(key, value).
This allows us to:
1. Keep everything on the device (a directory of JSON files)
2. Use in-memory storage for testing
3. Swap in a platform keystore or browser storage later
4. Keep the ledger decoupled from where bytes end up

Values are opaque strings. Serialization belongs to the ledger.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """
    Abstract interface for the persistence medium.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Slot name

        Returns:
            The stored string, or None if the key is absent

        Raises:
            PersistenceError: If the medium cannot be read
        """
        pass

    @abstractmethod
    def save(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Args:
            key: Slot name
            value: Serialized payload

        Raises:
            PersistenceError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """The persistence medium could not be read or written."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(message)


class NotFoundError(StorageError):
    """Entity not found."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
