"""Ledger package."""

from fintrack.ledger.store import (
    LedgerError,
    LedgerNotLoadedError,
    LedgerSnapshot,
    LedgerStore,
    PersistenceWarning,
    ReferentialIntegrityError,
)
from fintrack.services.storage import DuplicateError, NotFoundError, PersistenceError

__all__ = [
    "DuplicateError",
    "LedgerError",
    "LedgerNotLoadedError",
    "LedgerSnapshot",
    "LedgerStore",
    "NotFoundError",
    "PersistenceError",
    "PersistenceWarning",
    "ReferentialIntegrityError",
]
