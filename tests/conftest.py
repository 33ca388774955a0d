"""
Shared fixtures for the FinTrack test suite.

  - store: fresh InMemoryStore for each test
  - audit_logger: local AuditLogger whose history tests can inspect
  - ledger: LedgerStore over `store`, already loaded
  - make_card / make_transaction: builders with sensible defaults

No fixture reads the environment: keys, delays and directories are
passed explicitly so tests never depend on a .env file.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from fintrack.audit import AuditLogger
from fintrack.ledger import LedgerStore
from fintrack.models.card import Card, CardNetwork
from fintrack.models.transaction import Transaction, TransactionCategory
from fintrack.services.storage import InMemoryStore


CARDS_KEY = "test_cards"
TRANSACTIONS_KEY = "test_transactions"


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def ledger(store, audit_logger):
    """A loaded, empty ledger."""
    ledger = LedgerStore(
        store,
        cards_key=CARDS_KEY,
        transactions_key=TRANSACTIONS_KEY,
        audit_logger=audit_logger,
    )
    ledger.load()
    return ledger


@pytest.fixture
def make_card():
    def _make(**overrides) -> Card:
        fields = {
            "bank_name": "HDFC",
            "network": CardNetwork.VISA,
            "last_four": "1234",
            "limit": Decimal("100000"),
            "balance": Decimal("0"),
            "statement_day": 5,
            "due_day": 25,
            "color": "slate",
        }
        fields.update(overrides)
        return Card(**fields)
    return _make


@pytest.fixture
def make_transaction():
    def _make(card_id: str, amount="100", when=datetime(2024, 4, 15, 10, 30), **overrides) -> Transaction:
        fields = {
            "card_id": card_id,
            "amount": Decimal(str(amount)),
            "occurred_at": when,
            "description": "Coffee",
            "category": TransactionCategory.FOOD,
        }
        fields.update(overrides)
        return Transaction(**fields)
    return _make
