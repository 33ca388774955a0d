"""
Tests for FinTrack

Test strategy:
1. Unit tests for individual components (models, ledger, aggregations)
2. Async tests for the scheduler and capture assist (fake collaborators)
3. No real API calls in tests (stub Gemini models)
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from fintrack.models.card import (
    Card,
    CardIntelligence,
    CardNetwork,
    MilestoneOffer,
    RewardMilestone,
    SyncStatus,
)
from fintrack.models.transaction import (
    ParsedTransaction,
    Transaction,
    TransactionCategory,
    TransactionDraft,
    parse_timestamp,
)
from fintrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestCardModel:
    """Tests for the Card model."""

    def test_card_creation(self):
        """Test Card creation with defaults."""
        card = Card(bank_name="HDFC", last_four="1234", limit=Decimal("50000"))
        assert card.bank_name == "HDFC"
        assert card.network == CardNetwork.VISA
        assert card.balance == Decimal("0")
        assert card.sync_status is None
        assert card.benefits is None
        assert card.id

    def test_card_ids_are_unique(self):
        """Test that each card gets its own id."""
        assert Card().id != Card().id

    def test_card_strips_whitespace(self):
        """Test that whitespace is stripped from the bank name."""
        card = Card(bank_name="  HDFC  ")
        assert card.bank_name == "HDFC"

    def test_card_rejects_negative_balance(self):
        """Test that negative balances are rejected."""
        with pytest.raises(ValueError):
            Card(bank_name="HDFC", balance=Decimal("-1"))

    def test_card_rejects_negative_limit(self):
        with pytest.raises(ValueError):
            Card(bank_name="HDFC", limit=Decimal("-100"))

    def test_card_day_bounds(self):
        """Test statement and due days must be 1..31."""
        with pytest.raises(ValueError):
            Card(statement_day=0)
        with pytest.raises(ValueError):
            Card(due_day=32)

    def test_card_last_four_length(self):
        with pytest.raises(ValueError):
            Card(last_four="12345")

    def test_balance_may_exceed_limit(self):
        """Test that over-limit cards are allowed."""
        card = Card(limit=Decimal("100"), balance=Decimal("150"))
        assert card.balance > card.limit

    def test_display_name(self):
        card = Card(bank_name="HDFC", variant_name="Infinia", last_four="1234")
        assert card.display_name == "HDFC Infinia (..1234)"


class TestCardSerialization:
    """Tests for the stored (camelCase) card format."""

    def test_to_record_uses_stored_keys(self):
        """Test that records use the camelCase keys of saved data."""
        card = Card(
            id="c1",
            bank_name="HDFC",
            network=CardNetwork.AMEX,
            last_four="1234",
            limit=Decimal("100000"),
            balance=Decimal("2500.50"),
            statement_day=5,
            due_day=25,
        )
        record = card.to_record()
        assert record["id"] == "c1"
        assert record["bankName"] == "HDFC"
        assert record["type"] == "American Express"
        assert record["lastFour"] == "1234"
        assert record["statementDate"] == 5
        assert record["dueDate"] == 25
        assert record["balance"] == 2500.5

    def test_to_record_omits_absent_fields(self):
        """Test that enrichment fields are absent until synced."""
        record = Card(bank_name="HDFC").to_record()
        assert "benefits" not in record
        assert "syncStatus" not in record
        assert "lastSynced" not in record
        assert "variantName" not in record

    def test_from_saved_record(self):
        """Test loading a record written by an earlier build."""
        card = Card.model_validate({
            "id": "c1",
            "bankName": "Axis",
            "type": "Mastercard",
            "lastFour": "9876",
            "limit": 200000,
            "balance": 1000,
            "statementDate": 12,
            "dueDate": 2,
            "color": "from-slate-900",
            "variantName": "Magnus",
            "benefits": ["Lounge access"],
            "milestones": [{"id": "m1", "label": "Annual", "target": 400000, "reward": "Voucher"}],
            "syncStatus": "completed",
        })
        assert card.network == CardNetwork.MASTERCARD
        assert card.variant_name == "Magnus"
        assert card.milestones[0].target == Decimal("400000")
        assert card.sync_status == SyncStatus.COMPLETED


class TestEnumCoercion:
    """Tests for the unknown-label policy of closed sets."""

    def test_unknown_network_becomes_other(self):
        card = Card.model_validate({"bankName": "X", "type": "Diners Club"})
        assert card.network == CardNetwork.OTHER

    def test_network_matches_case_insensitively(self):
        assert CardNetwork("visa") == CardNetwork.VISA
        assert CardNetwork("AMEX") == CardNetwork.AMEX
        assert CardNetwork("american express") == CardNetwork.AMEX

    def test_unknown_category_becomes_other(self):
        assert TransactionCategory("Groceries") == TransactionCategory.OTHER
        assert TransactionCategory("food & dining") == TransactionCategory.FOOD

    def test_sync_status_is_not_coerced(self):
        """Test that an unknown sync status is rejected, not guessed."""
        with pytest.raises(ValueError):
            SyncStatus("paused")

    def test_all_categories_exist(self):
        """Test that expected categories exist."""
        expected = [
            "Food & Dining", "Shopping", "Transportation", "Bills & Utilities",
            "Entertainment", "Health & Wellness", "Travel", "Other",
        ]
        assert [cat.value for cat in TransactionCategory] == expected


class TestTimestamps:
    """Tests for timestamp normalisation."""

    def test_date_only_means_midnight(self):
        assert parse_timestamp("2024-04-15") == datetime(2024, 4, 15)

    def test_offset_converted_to_utc(self):
        assert parse_timestamp("2024-04-15T10:00:00+05:30") == datetime(2024, 4, 15, 4, 30)

    def test_zulu_suffix(self):
        assert parse_timestamp("2024-04-15T10:00:00Z") == datetime(2024, 4, 15, 10, 0)

    def test_date_object(self):
        assert parse_timestamp(date(2024, 1, 2)) == datetime(2024, 1, 2)


class TestTransactionModels:
    """Tests for transaction-related models."""

    def test_transaction_creation(self):
        tx = Transaction(card_id="c1", amount=Decimal("499"), occurred_at="2024-04-15")
        assert tx.category == TransactionCategory.OTHER
        assert tx.calendar_date == date(2024, 4, 15)

    def test_transaction_requires_card(self):
        with pytest.raises(ValueError):
            Transaction(card_id="", amount=Decimal("1"), occurred_at="2024-04-15")

    def test_transaction_record_format(self):
        tx = Transaction(
            id="t1",
            card_id="c1",
            amount=Decimal("100"),
            occurred_at=datetime(2024, 4, 15, 9, 0),
            description="Swiggy",
            category=TransactionCategory.FOOD,
        )
        record = tx.to_record()
        assert record == {
            "id": "t1",
            "cardId": "c1",
            "amount": 100.0,
            "date": "2024-04-15T09:00:00",
            "description": "Swiggy",
            "category": "Food & Dining",
        }

    def test_parsed_transaction_keeps_last_four_digits(self):
        parsed = ParsedTransaction.model_validate({
            "amount": 1200,
            "description": "Amazon",
            "date": "2024-04-15",
            "category": "Shopping",
            "cardLastFour": "XX5678",
        })
        assert parsed.card_last_four == "5678"
        assert parsed.category == TransactionCategory.SHOPPING

    def test_parsed_transaction_without_digits(self):
        parsed = ParsedTransaction.model_validate({
            "amount": 50, "date": "2024-04-15", "cardLastFour": "none",
        })
        assert parsed.card_last_four is None

    def test_draft_to_transaction(self):
        draft = TransactionDraft(
            card_id="c1",
            amount=Decimal("250"),
            description="Uber",
            occurred_at="2024-04-15",
            category=TransactionCategory.TRANSPORT,
        )
        tx = draft.to_transaction(transaction_id="t9")
        assert tx.id == "t9"
        assert tx.card_id == "c1"
        assert tx.amount == Decimal("250")

    def test_draft_without_card_cannot_be_saved(self):
        draft = TransactionDraft(amount=Decimal("250"), occurred_at="2024-04-15")
        with pytest.raises(ValueError, match="no card"):
            draft.to_transaction()


class TestEnrichmentModels:
    """Tests for enrichment models."""

    def test_milestone_from_offer_gets_fresh_id(self):
        offer = MilestoneOffer(label="Fee waiver", target=Decimal("300000"), reward="Annual fee")
        first = RewardMilestone.from_offer(offer)
        second = RewardMilestone.from_offer(offer)
        assert first.id != second.id
        assert first.target == Decimal("300000")

    def test_milestone_offer_requires_label(self):
        with pytest.raises(ValueError):
            MilestoneOffer(label="", target=Decimal("1"))

    def test_card_intelligence_defaults(self):
        intelligence = CardIntelligence()
        assert intelligence.benefits == []
        assert intelligence.milestones == []


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.CARD_ADDED,
            description="Test card added",
        )
        assert event.event_type == AuditEventType.CARD_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Transaction added",
            details={"card_id": "c1", "amount": "1000"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_added"
        assert log_dict["details"]["card_id"] == "c1"

    def test_audit_event_builder_card_removed(self):
        event = AuditEventBuilder.card_removed("c1", cascaded=3)
        assert event.event_type == AuditEventType.CARD_REMOVED
        assert event.entity_id == "c1"
        assert event.details["transactions_removed"] == 3
        assert event.is_user_action is True

    def test_audit_event_builder_sync_failed(self):
        event = AuditEventBuilder.sync_failed("c1", "quota exceeded")
        assert event.severity == AuditSeverity.WARNING
        assert event.error_message == "quota exceeded"
        assert event.is_user_action is False

    def test_audit_event_builder_persistence_failed(self):
        event = AuditEventBuilder.persistence_failed(
            AuditEventType.SAVE_FAILED, "fintrack_cards", "disk full"
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.details["key"] == "fintrack_cards"
        assert "save" in event.description


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
