"""
Transaction Models for FinTrack

A Transaction is one spend event against exactly one card.

Timestamps are stored as naive UTC datetimes. Date-only input means
midnight; offset-aware input is converted to UTC first. This keeps every
comparison in the aggregation engine between like values.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from fintrack.models.card import LedgerModel, Money, coerce_label, new_id


class TransactionCategory(str, Enum):
    """Spending categories."""
    FOOD = "Food & Dining"
    SHOPPING = "Shopping"
    TRANSPORT = "Transportation"
    BILLS = "Bills & Utilities"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health & Wellness"
    TRAVEL = "Travel"
    OTHER = "Other"

    @classmethod
    def _missing_(cls, value):
        return coerce_label(cls, value)


def parse_timestamp(value):
    """
    Normalise an ISO-8601 string, date or datetime to a naive UTC datetime.

    Unrecognised types are returned untouched so pydantic reports them.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)

    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Transaction(LedgerModel):
    """
    A single spend event.

    Sign convention: a positive amount is a purchase and increases the
    owning card's balance.
    """

    id: str = Field(default_factory=new_id)
    card_id: str = Field(
        ...,
        min_length=1,
        description="Owning card; must reference a live card"
    )
    amount: Money
    occurred_at: datetime = Field(
        ...,
        alias="date",
        description="When the spend happened"
    )
    description: str = Field(default="", max_length=500)
    category: TransactionCategory = TransactionCategory.OTHER

    @field_validator("occurred_at", mode="before")
    @classmethod
    def normalise_timestamp(cls, v):
        return parse_timestamp(v)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        if isinstance(v, TransactionCategory):
            return v
        return TransactionCategory(v)

    @property
    def calendar_date(self) -> date:
        return self.occurred_at.date()


class ParsedTransaction(LedgerModel):
    """
    Output of the text-parsing collaborator.

    This is PROPOSED data. It only becomes a Transaction after the user
    submits the draft built from it.
    """

    amount: Money
    description: str = ""
    occurred_at: datetime = Field(..., alias="date")
    category: TransactionCategory = TransactionCategory.OTHER
    card_last_four: Optional[str] = None

    @field_validator("occurred_at", mode="before")
    @classmethod
    def normalise_timestamp(cls, v):
        return parse_timestamp(v)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        if isinstance(v, TransactionCategory):
            return v
        return TransactionCategory(v)

    @field_validator("card_last_four", mode="before")
    @classmethod
    def keep_last_four_digits(cls, v):
        if v is None:
            return None
        digits = "".join(ch for ch in str(v) if ch.isdigit())
        return digits[-4:] or None


class TransactionDraft(LedgerModel):
    """Pre-filled transaction form produced by the capture assist."""

    card_id: Optional[str] = None
    amount: Money
    description: str = ""
    occurred_at: datetime = Field(..., alias="date")
    category: TransactionCategory = TransactionCategory.OTHER

    def to_transaction(self, transaction_id: Optional[str] = None) -> Transaction:
        """Turn the draft into a Transaction ready for the ledger."""
        if not self.card_id:
            raise ValueError("Draft has no card assigned")
        return Transaction(
            id=transaction_id or new_id(),
            card_id=self.card_id,
            amount=self.amount,
            occurred_at=self.occurred_at,
            description=self.description,
            category=self.category,
        )
