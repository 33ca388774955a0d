"""
Core Data Models for FinTrack

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for on-device storage and logging
4. Stay wire-compatible with data saved by earlier FinTrack builds

DESIGN DECISION: Closed sets (networks, categories) COERCE unknown labels to
"Other" instead of rejecting them. Cards and transactions arrive from
pasted text, LLM output and old saves; losing a whole record over an odd
label is worse than filing it under "Other". The rule is identical at every
entry point because it lives in the enum itself.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate an opaque, collision resistant identifier."""
    return str(uuid4())


# Money stays a Decimal in memory but is written as a plain JSON number.
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


def coerce_label(enum_cls, value):
    """
    Map a free-form label onto a closed enum, falling back to OTHER.

    Matching is case-insensitive against both values ("American Express")
    and member names ("AMEX").
    """
    if isinstance(value, str):
        wanted = value.strip().lower()
        for member in enum_cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
    return enum_cls.OTHER


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CardNetwork(str, Enum):
    """Card payment network."""
    VISA = "Visa"
    MASTERCARD = "Mastercard"
    AMEX = "American Express"
    DISCOVER = "Discover"
    RUPAY = "RuPay"
    OTHER = "Other"

    @classmethod
    def _missing_(cls, value):
        return coerce_label(cls, value)


class SyncStatus(str, Enum):
    """
    Enrichment lifecycle of a card.

    idle -> syncing -> completed | failed

    A card goes back to IDLE when its bank or variant is edited, or when
    the scheduler starts and finds it still SYNCING from an earlier session.
    """
    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETED = "completed"
    FAILED = "failed"


class LedgerModel(BaseModel):
    """
    Base for persisted entities.

    Python attributes are snake_case; the stored JSON uses camelCase keys.
    Both spellings are accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_record(self) -> dict:
        """Serialize for the key-value medium (absent fields stay absent)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# ENRICHMENT MODELS
# =============================================================================

class MilestoneOffer(BaseModel):
    """A milestone as reported by the enrichment service (no id yet)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    label: str = Field(..., min_length=1, max_length=200)
    target: Money = Field(
        ...,
        description="Spend needed to unlock the reward, in currency units"
    )
    reward: str = Field(default="", max_length=500)


class RewardMilestone(LedgerModel):
    """
    A spend target tied to one card.

    Read-only from the ledger's point of view: replaced wholesale on every
    successful sync.
    """

    id: str = Field(default_factory=new_id)
    label: str
    target: Money
    reward: str = ""

    @classmethod
    def from_offer(cls, offer: MilestoneOffer) -> "RewardMilestone":
        return cls(label=offer.label, target=offer.target, reward=offer.reward)


class IntelligenceSource(BaseModel):
    """A public web page the benefit lookup was grounded on."""

    title: str = ""
    uri: str


class CardIntelligence(BaseModel):
    """
    Public information about a card product.

    Produced by the enrichment collaborator from the bank name and
    variant name ONLY.
    """

    benefits: list[str] = Field(default_factory=list)
    milestones: list[MilestoneOffer] = Field(default_factory=list)
    sources: list[IntelligenceSource] = Field(default_factory=list)


# =============================================================================
# CORE CARD MODEL
# =============================================================================

class Card(LedgerModel):
    """
    One credit card owned by the user.

    The balance is never negative. It is conventionally at or below the
    limit, but that is not enforced: a card can be over-limit.

    Enrichment fields (benefits, milestones, last_synced) stay None until a
    sync has completed at least once.
    """

    # Identity
    id: str = Field(
        default_factory=new_id,
        description="Opaque identifier, stable for the card's lifetime"
    )

    bank_name: str = Field(
        default="",
        max_length=100,
        description="Issuing bank"
    )
    network: CardNetwork = Field(
        default=CardNetwork.VISA,
        alias="type",
        description="Payment network"
    )
    last_four: str = Field(
        default="",
        max_length=4,
        description="Last four digits, display only"
    )
    limit: Money = Field(
        default=Decimal("0"),
        ge=0,
        description="Credit limit"
    )
    balance: Money = Field(
        default=Decimal("0"),
        ge=0,
        description="Outstanding balance"
    )
    statement_day: int = Field(
        default=1,
        ge=1,
        le=31,
        alias="statementDate",
        description="Day of month the statement is generated"
    )
    due_day: int = Field(
        default=1,
        ge=1,
        le=31,
        alias="dueDate",
        description="Day of month payment is due"
    )
    color: str = Field(
        default="",
        description="Theme token, opaque to the ledger"
    )
    variant_name: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Card variant, e.g. 'Infinia Metal'"
    )

    # Enrichment-derived
    benefits: Optional[list[str]] = None
    milestones: Optional[list[RewardMilestone]] = None
    sync_status: Optional[SyncStatus] = None
    last_synced: Optional[datetime] = None

    @field_validator("network", mode="before")
    @classmethod
    def coerce_network(cls, v):
        if isinstance(v, CardNetwork):
            return v
        return CardNetwork(v)

    @property
    def display_name(self) -> str:
        """Human label, e.g. 'HDFC Infinia (..1234)'."""
        name = self.bank_name
        if self.variant_name:
            name = f"{name} {self.variant_name}"
        if self.last_four:
            name = f"{name} (..{self.last_four})"
        return name
