"""
Data Models Package

This package contains all Pydantic models used in FinTrack.
All data flowing through the system must conform to these schemas.
"""

from fintrack.models.card import (
    Card,
    CardIntelligence,
    CardNetwork,
    IntelligenceSource,
    LedgerModel,
    MilestoneOffer,
    RewardMilestone,
    SyncStatus,
    new_id,
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

__all__ = [
    # Card models
    "Card",
    "CardIntelligence",
    "CardNetwork",
    "IntelligenceSource",
    "LedgerModel",
    "MilestoneOffer",
    "RewardMilestone",
    "SyncStatus",
    "new_id",
    # Transaction models
    "ParsedTransaction",
    "Transaction",
    "TransactionCategory",
    "TransactionDraft",
    "parse_timestamp",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
