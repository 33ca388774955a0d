"""
Ledger Store

The in-memory, authoritative collection of cards and transactions.

GUARANTEES:
- A card's balance moves with every transaction add/update/remove and is
  clamped at zero after every mutation
- A transaction never references a missing card (checked BEFORE mutating)
- Removing a card removes its transactions
- After every mutation both collections are written to the medium
- Listeners hear about every change to the card set, including balance
  changes, so the enrichment scheduler reacts without polling

Mutations are synchronous. Nothing else writes the collections directly;
callers only ever receive copies.
"""

import json
import warnings
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from fintrack.audit import AuditLogger
from fintrack.config import get_settings
from fintrack.models.audit import AuditEventBuilder, AuditEventType
from fintrack.models.card import (
    Card,
    CardIntelligence,
    RewardMilestone,
    SyncStatus,
)
from fintrack.models.transaction import Transaction, TransactionCategory
from fintrack.services.storage import (
    DuplicateError,
    KeyValueStore,
    NotFoundError,
    PersistenceError,
)


ZERO = Decimal("0")

Listener = Callable[[], None]


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ReferentialIntegrityError(LedgerError):
    """A transaction references a card that does not exist."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card {card_id} does not exist")


class LedgerNotLoadedError(LedgerError):
    """A mutation was attempted before the ledger was loaded."""
    pass


class PersistenceWarning(UserWarning):
    """Saved data could not be read; the ledger started without it."""
    pass


class LedgerSnapshot(BaseModel):
    """Read-only copy of the ledger used for rendering and aggregation."""

    cards: list[Card] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)


def _clamp(amount: Decimal) -> Decimal:
    return amount if amount > ZERO else ZERO


class LedgerStore:
    """
    Single source of truth for cards and transactions.

    Usage:
        ledger = LedgerStore(JsonFileStore())
        ledger.load()
        ledger.add_card(card)
        ledger.add_transaction(tx)
    """

    def __init__(
        self,
        store: KeyValueStore,
        cards_key: Optional[str] = None,
        transactions_key: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        if cards_key is None or transactions_key is None:
            storage_settings = get_settings().storage
            cards_key = cards_key or storage_settings.cards_key
            transactions_key = transactions_key or storage_settings.transactions_key

        self._store = store
        self._cards_key = cards_key
        self._transactions_key = transactions_key
        self._audit = audit_logger or AuditLogger()

        self._cards: dict[str, Card] = {}
        self._transactions: dict[str, Transaction] = {}
        self._listeners: list[Listener] = []
        self._loaded = False

    # -------------------------------------------------------------------------
    # Loading & persistence
    # -------------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        """
        Rehydrate both collections from the medium.

        An absent key means an empty collection. Unreadable data is
        reported as a PersistenceWarning and that collection starts empty.
        """
        cards = self._load_collection(self._cards_key, Card)
        transactions = self._load_collection(self._transactions_key, Transaction)

        self._cards = {card.id: card for card in cards}
        self._transactions = {}
        for tx in transactions:
            if tx.card_id not in self._cards:
                self._warn(
                    self._transactions_key,
                    f"Dropped transaction {tx.id}: card {tx.card_id} not found",
                )
                continue
            self._transactions[tx.id] = tx

        self._loaded = True
        self._audit.log(AuditEventBuilder.ledger_loaded(
            cards=len(self._cards),
            transactions=len(self._transactions),
        ))
        self._notify()

    def _load_collection(self, key: str, model: type) -> list:
        try:
            raw = self._store.load(key)
        except PersistenceError as e:
            self._warn(key, str(e))
            return []

        if raw is None:
            return []

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            self._warn(key, f"Stored data is not valid JSON: {e}")
            return []
        if not isinstance(records, list):
            self._warn(key, "Stored data is not a list of records")
            return []

        items = []
        for index, record in enumerate(records):
            try:
                items.append(model.model_validate(record))
            except ValidationError as e:
                self._warn(key, f"Skipped invalid record #{index}: {e.error_count()} errors")
        return items

    def _warn(self, key: str, message: str) -> None:
        self._audit.log(AuditEventBuilder.persistence_failed(
            AuditEventType.LOAD_FAILED, key, message
        ))
        warnings.warn(f"{key}: {message}", PersistenceWarning, stacklevel=3)

    def _persist(self) -> None:
        """Write both collections. Every key is attempted; the first failure is raised."""
        payloads = (
            (self._cards_key, [card.to_record() for card in self._cards.values()]),
            (self._transactions_key, [tx.to_record() for tx in self._transactions.values()]),
        )
        first_error: Optional[PersistenceError] = None
        for key, records in payloads:
            try:
                self._store.save(key, json.dumps(records))
            except PersistenceError as e:
                self._audit.log(AuditEventBuilder.persistence_failed(
                    AuditEventType.SAVE_FAILED, key, str(e)
                ))
                first_error = first_error or e
        if first_error:
            raise first_error

    def _commit(self) -> None:
        """
        Persist and notify after a mutation.

        A failed write does not undo the mutation: listeners are still
        told and the PersistenceError reaches the caller.
        """
        try:
            self._persist()
        finally:
            self._notify()

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise LedgerNotLoadedError("Call load() before changing the ledger")

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        """Call `listener()` after every change to the card set."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def cards(self) -> list[Card]:
        return [card.model_copy(deep=True) for card in self._cards.values()]

    @property
    def transactions(self) -> list[Transaction]:
        return [tx.model_copy(deep=True) for tx in self._transactions.values()]

    def get_card(self, card_id: str) -> Optional[Card]:
        card = self._cards.get(card_id)
        return card.model_copy(deep=True) if card else None

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        tx = self._transactions.get(transaction_id)
        return tx.model_copy(deep=True) if tx else None

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(cards=self.cards, transactions=self.transactions)

    def list_transactions(
        self,
        card_id: Optional[str] = None,
        category: Optional[TransactionCategory] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        List transactions with optional filters, most recent first.

        Args:
            card_id: Only this card's transactions
            category: Only this category
            date_from: On or after this calendar date
            date_to: On or before this calendar date
        """
        results = []
        for tx in self._transactions.values():
            if card_id and tx.card_id != card_id:
                continue
            if category and tx.category != category:
                continue
            if date_from and tx.calendar_date < date_from:
                continue
            if date_to and tx.calendar_date > date_to:
                continue
            results.append(tx.model_copy(deep=True))
        results.sort(key=lambda tx: tx.occurred_at, reverse=True)
        return results

    # -------------------------------------------------------------------------
    # Card mutations
    # -------------------------------------------------------------------------

    def add_card(self, card: Card) -> Card:
        """
        Insert a new card in the IDLE sync state.

        Enrichment fields are cleared: they only ever come from a sync.
        """
        self._require_loaded()
        if card.id in self._cards:
            raise DuplicateError(f"Card {card.id} already exists")

        stored = card.model_copy(deep=True, update={
            "sync_status": SyncStatus.IDLE,
            "benefits": None,
            "milestones": None,
            "last_synced": None,
        })
        self._cards[stored.id] = stored
        self._audit.log(AuditEventBuilder.card_added(stored.id, stored.display_name))
        self._commit()
        return stored.model_copy(deep=True)

    def update_card(self, updated: Card) -> Card:
        """
        Replace a card by id.

        Editing the bank name or variant name resets the sync status to
        IDLE so fresh benefits are fetched. Any other edit keeps the sync
        status carried by `updated`.
        """
        self._require_loaded()
        previous = self._cards.get(updated.id)
        if previous is None:
            raise NotFoundError(f"Card {updated.id} not found")

        needs_resync = (
            previous.bank_name != updated.bank_name
            or (previous.variant_name or "") != (updated.variant_name or "")
        )
        stored = updated.model_copy(deep=True)
        if needs_resync:
            stored.sync_status = SyncStatus.IDLE

        self._cards[stored.id] = stored
        self._audit.log(AuditEventBuilder.card_updated(stored.id, needs_resync))
        self._commit()
        return stored.model_copy(deep=True)

    def remove_card(self, card_id: str) -> int:
        """
        Delete a card and every transaction that references it.

        Returns the number of transactions removed.
        """
        self._require_loaded()
        if card_id not in self._cards:
            raise NotFoundError(f"Card {card_id} not found")

        del self._cards[card_id]
        orphaned = [tx_id for tx_id, tx in self._transactions.items() if tx.card_id == card_id]
        for tx_id in orphaned:
            del self._transactions[tx_id]

        self._audit.log(AuditEventBuilder.card_removed(card_id, len(orphaned)))
        self._commit()
        return len(orphaned)

    # -------------------------------------------------------------------------
    # Transaction mutations
    # -------------------------------------------------------------------------

    def _adjust_balance(self, card_id: str, delta: Decimal) -> None:
        card = self._cards[card_id]
        card.balance = _clamp(card.balance + delta)

    def add_transaction(self, tx: Transaction) -> Transaction:
        """Insert a transaction and add its amount to the owning card."""
        self._require_loaded()
        if tx.card_id not in self._cards:
            raise ReferentialIntegrityError(tx.card_id)
        if tx.id in self._transactions:
            raise DuplicateError(f"Transaction {tx.id} already exists")

        stored = tx.model_copy(deep=True)
        self._transactions[stored.id] = stored
        self._adjust_balance(stored.card_id, stored.amount)

        self._audit.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_ADDED, stored.id, stored.card_id, str(stored.amount)
        ))
        self._commit()
        return stored.model_copy(deep=True)

    def update_transaction(self, updated: Transaction) -> Transaction:
        """
        Replace a transaction, moving balances to match.

        Same card: balance += new - old.
        Reassigned: old card -= old amount, new card += new amount.
        """
        self._require_loaded()
        previous = self._transactions.get(updated.id)
        if previous is None:
            raise NotFoundError(f"Transaction {updated.id} not found")
        if updated.card_id not in self._cards:
            raise ReferentialIntegrityError(updated.card_id)

        if previous.card_id == updated.card_id:
            self._adjust_balance(updated.card_id, updated.amount - previous.amount)
        else:
            self._adjust_balance(previous.card_id, -previous.amount)
            self._adjust_balance(updated.card_id, updated.amount)

        stored = updated.model_copy(deep=True)
        self._transactions[stored.id] = stored

        self._audit.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_UPDATED, stored.id, stored.card_id, str(stored.amount)
        ))
        self._commit()
        return stored.model_copy(deep=True)

    def remove_transaction(self, transaction_id: str) -> None:
        """Subtract the amount from the owning card, then delete."""
        self._require_loaded()
        tx = self._transactions.get(transaction_id)
        if tx is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")

        self._adjust_balance(tx.card_id, -tx.amount)
        del self._transactions[transaction_id]

        self._audit.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_REMOVED, tx.id, tx.card_id, str(tx.amount)
        ))
        self._commit()

    # -------------------------------------------------------------------------
    # Enrichment write-back (used by the scheduler)
    # -------------------------------------------------------------------------

    def _set_card_fields(self, card_id: str, **fields) -> Optional[Card]:
        self._require_loaded()
        card = self._cards.get(card_id)
        if card is None:
            return None
        for name, value in fields.items():
            setattr(card, name, value)
        self._commit()
        return card.model_copy(deep=True)

    def mark_syncing(self, card_id: str) -> Optional[Card]:
        """Flag a card as SYNCING. Returns None if the card is gone."""
        return self._set_card_fields(card_id, sync_status=SyncStatus.SYNCING)

    def mark_sync_idle(self, card_id: str) -> Optional[Card]:
        """Put a card back in the IDLE state. Returns None if the card is gone."""
        return self._set_card_fields(card_id, sync_status=SyncStatus.IDLE)

    def mark_sync_failed(self, card_id: str) -> Optional[Card]:
        """Flag a card as FAILED. Returns None if the card is gone."""
        return self._set_card_fields(card_id, sync_status=SyncStatus.FAILED)

    def apply_enrichment(
        self,
        card_id: str,
        intelligence: CardIntelligence,
        synced_at: Optional[datetime] = None,
    ) -> Optional[Card]:
        """
        Store a successful sync: benefits and milestones are replaced
        wholesale, each milestone gets a fresh id.
        """
        return self._set_card_fields(
            card_id,
            benefits=list(intelligence.benefits),
            milestones=[RewardMilestone.from_offer(offer) for offer in intelligence.milestones],
            sync_status=SyncStatus.COMPLETED,
            last_synced=synced_at or datetime.now(timezone.utc),
        )
