"""
Audit Models for FinTrack

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every balance change
2. Debugging information when enrichment or parsing goes wrong
3. A local history the user can inspect

DESIGN DECISION: Audit events are local only. They never carry card
numbers or anything beyond what is already on the device.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Cards
    CARD_ADDED = "card_added"
    CARD_UPDATED = "card_updated"
    CARD_REMOVED = "card_removed"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_REMOVED = "transaction_removed"

    # Enrichment
    SYNC_STARTED = "sync_started"
    SYNC_COMPLETED = "sync_completed"
    SYNC_FAILED = "sync_failed"
    SYNC_DISCARDED = "sync_discarded"

    # Capture assist
    CAPTURE_SUCCEEDED = "capture_succeeded"
    CAPTURE_FAILED = "capture_failed"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    LOAD_FAILED = "load_failed"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('card', 'transaction', 'ledger')"
    )
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.card_added(card_id, "HDFC Infinia")
        event = AuditEventBuilder.sync_failed(card_id, "timeout")
    """

    @staticmethod
    def card_added(card_id: str, label: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_ADDED,
            entity_type="card",
            entity_id=card_id,
            description=f"Card added: {label}",
            is_user_action=True,
        )

    @staticmethod
    def card_updated(card_id: str, resync: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_UPDATED,
            entity_type="card",
            entity_id=card_id,
            description="Card updated" + (" (benefits will be refreshed)" if resync else ""),
            details={"resync": resync},
            is_user_action=True,
        )

    @staticmethod
    def card_removed(card_id: str, cascaded: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_REMOVED,
            entity_type="card",
            entity_id=card_id,
            description=f"Card removed with {cascaded} transactions",
            details={"transactions_removed": cascaded},
            is_user_action=True,
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        transaction_id: str,
        card_id: str,
        amount: str,
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction {verb}: {amount}",
            details={"card_id": card_id, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def sync_started(card_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_STARTED,
            entity_type="card",
            entity_id=card_id,
            description="Fetching public card benefits",
        )

    @staticmethod
    def sync_completed(card_id: str, benefits: int, milestones: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_COMPLETED,
            entity_type="card",
            entity_id=card_id,
            description=f"Card synced: {benefits} benefits, {milestones} milestones",
            details={"benefits": benefits, "milestones": milestones},
        )

    @staticmethod
    def sync_failed(card_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="card",
            entity_id=card_id,
            description="Card benefit lookup failed",
            error_message=error_message,
        )

    @staticmethod
    def sync_discarded(card_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_DISCARDED,
            entity_type="card",
            entity_id=card_id,
            description="Sync result dropped: card changed while syncing",
        )

    @staticmethod
    def capture_succeeded(card_id: Optional[str], matched: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CAPTURE_SUCCEEDED,
            entity_type="draft",
            description="Pasted message parsed into a draft",
            details={"card_id": card_id, "card_matched": matched},
            is_user_action=True,
        )

    @staticmethod
    def capture_failed(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CAPTURE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="draft",
            description="Could not read a transaction from pasted text",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def ledger_loaded(cards: int, transactions: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            description=f"Ledger loaded: {cards} cards, {transactions} transactions",
            details={"cards": cards, "transactions": transactions},
        )

    @staticmethod
    def persistence_failed(
        event_type: AuditEventType,
        key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description=f"Storage {event_type.value.split('_')[0]} failed for {key}",
            details={"key": key},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
