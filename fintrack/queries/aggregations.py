"""
Aggregation Engine

DESIGN DECISION: Aggregations are PURE functions over ledger snapshots.
They never read the ledger themselves, never cache and never write. The
caller passes the cards/transactions and the reference time `now`, so the
same inputs always give the same numbers.

All period checks use the calendar fields of the stored (naive UTC)
timestamps, compared with `now` normalised the same way.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from fintrack.models.card import Card, Money
from fintrack.models.transaction import (
    Transaction,
    TransactionCategory,
    parse_timestamp,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")

ALL_CARDS = "all"
HIGH_UTILIZATION_PERCENT = Decimal("30")


# =============================================================================
# RESULT MODELS
# =============================================================================

class PeriodTotals(BaseModel):
    """Spend in the windows containing `now`, all within now's year."""

    daily: Money = ZERO
    monthly: Money = ZERO
    quarterly: Money = ZERO
    half_yearly: Money = ZERO
    yearly: Money = ZERO


class CategoryTotal(BaseModel):
    category: TransactionCategory
    amount: Money


class CardContribution(BaseModel):
    """
    One card's lifetime spend and its share of the net total.

    With refunds a share can fall below 0 or exceed 1. Every share is 0
    when the net total is not positive.
    """

    card_id: str
    bank_name: str
    variant_name: Optional[str] = None
    color: str = ""
    amount: Money
    share: float


class MonthlyTrendPoint(BaseModel):
    month: int = Field(..., ge=1, le=12)
    label: str
    amount: Money


class MilestoneProgress(BaseModel):
    milestone_id: str
    label: str
    target: Money
    reward: str = ""
    spend: Money
    percent: float = Field(..., ge=0, le=100)

    @property
    def achieved(self) -> bool:
        return self.percent >= 100


class PortfolioSummary(BaseModel):
    """Headline figures across every card."""

    card_count: int
    total_balance: Money
    total_limit: Money
    utilization_percent: float
    utilization_band: str


class DailyActivityPoint(BaseModel):
    day: date
    label: str
    amount: Money


class CardBenefit(BaseModel):
    card_id: str
    bank_name: str
    benefit: str


# =============================================================================
# HELPERS
# =============================================================================

MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def _reference_time(now: Optional[datetime]) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    return parse_timestamp(now)


# =============================================================================
# AGGREGATIONS
# =============================================================================

def filter_by_card(
    transactions: Iterable[Transaction],
    card_id: Optional[str] = None,
) -> list[Transaction]:
    """Transactions of one card. None or "all" keeps everything."""
    if card_id is None or card_id == ALL_CARDS:
        return list(transactions)
    return [tx for tx in transactions if tx.card_id == card_id]


def period_totals(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> PeriodTotals:
    """
    Sum spend in the day, month, quarter, half-year and year of `now`.

    Quarters are months 0-2, 3-5, 6-8, 9-11 (zero-based); halves are 0-5
    and 6-11. Anything outside now's year counts nowhere.
    """
    now = _reference_time(now)
    month_index = now.month - 1
    today = now.date()

    totals = PeriodTotals()
    for tx in transactions:
        when = tx.occurred_at
        if when.year != now.year:
            continue
        tx_month = when.month - 1

        totals.yearly += tx.amount
        if tx_month // 6 == month_index // 6:
            totals.half_yearly += tx.amount
        if tx_month // 3 == month_index // 3:
            totals.quarterly += tx.amount
        if tx_month == month_index:
            totals.monthly += tx.amount
        if when.date() == today:
            totals.daily += tx.amount
    return totals


def category_breakdown(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """Spend per category, in the order each category first appears."""
    groups: dict[TransactionCategory, Decimal] = {}
    for tx in transactions:
        groups[tx.category] = groups.get(tx.category, ZERO) + tx.amount
    return [CategoryTotal(category=category, amount=amount) for category, amount in groups.items()]


def card_contributions(
    cards: Iterable[Card],
    transactions: Iterable[Transaction],
) -> list[CardContribution]:
    """
    Lifetime spend per card, largest first.

    Every card appears, including ones with no spend. Transactions of
    unknown cards are ignored.
    """
    by_card: dict[str, Decimal] = {}
    for tx in transactions:
        by_card[tx.card_id] = by_card.get(tx.card_id, ZERO) + tx.amount

    cards = list(cards)
    total = sum((by_card.get(card.id, ZERO) for card in cards), ZERO)

    contributions = []
    for card in cards:
        amount = by_card.get(card.id, ZERO)
        contributions.append(CardContribution(
            card_id=card.id,
            bank_name=card.bank_name,
            variant_name=card.variant_name,
            color=card.color,
            amount=amount,
            share=float(amount / total) if total > 0 else 0.0,
        ))
    # sorted() is stable, so ties keep card order
    return sorted(contributions, key=lambda c: c.amount, reverse=True)


def monthly_trend(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> list[MonthlyTrendPoint]:
    """Twelve points, January to December of now's year."""
    now = _reference_time(now)
    by_month = [ZERO] * 12
    for tx in transactions:
        if tx.occurred_at.year == now.year:
            by_month[tx.occurred_at.month - 1] += tx.amount

    return [
        MonthlyTrendPoint(month=index + 1, label=MONTH_LABELS[index], amount=amount)
        for index, amount in enumerate(by_month)
    ]


def current_year_spend_by_card(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> dict[str, Decimal]:
    """Card id -> spend within now's year."""
    now = _reference_time(now)
    spend: dict[str, Decimal] = {}
    for tx in transactions:
        if tx.occurred_at.year == now.year:
            spend[tx.card_id] = spend.get(tx.card_id, ZERO) + tx.amount
    return spend


def milestone_progress(card: Card, spend: Decimal) -> list[MilestoneProgress]:
    """
    Progress of each milestone on a card, as a percentage in [0, 100].

    A milestone with a target of zero or less counts as achieved.
    """
    if not isinstance(spend, Decimal):
        spend = Decimal(str(spend))
    progress = []
    for milestone in card.milestones or []:
        if milestone.target <= 0:
            percent = HUNDRED
        else:
            percent = min(HUNDRED, HUNDRED * spend / milestone.target)
        progress.append(MilestoneProgress(
            milestone_id=milestone.id,
            label=milestone.label,
            target=milestone.target,
            reward=milestone.reward,
            spend=spend,
            percent=float(max(ZERO, percent)),
        ))
    return progress


def portfolio_summary(cards: Iterable[Card]) -> PortfolioSummary:
    """Total balance, total limit and utilization across cards."""
    cards = list(cards)
    total_balance = sum((card.balance for card in cards), ZERO)
    total_limit = sum((card.limit for card in cards), ZERO)
    utilization = HUNDRED * total_balance / total_limit if total_limit > 0 else ZERO

    return PortfolioSummary(
        card_count=len(cards),
        total_balance=total_balance,
        total_limit=total_limit,
        utilization_percent=float(utilization),
        utilization_band="High" if utilization > HIGH_UTILIZATION_PERCENT else "Good",
    )


def daily_activity(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
    days: int = 7,
) -> list[DailyActivityPoint]:
    """Spend per day for the last `days` days ending today, oldest first."""
    if days < 1:
        raise ValueError("days must be at least 1")

    today = _reference_time(now).date()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    by_day = {day: ZERO for day in window}
    for tx in transactions:
        day = tx.calendar_date
        if day in by_day:
            by_day[day] += tx.amount

    return [
        DailyActivityPoint(day=day, label=day.strftime("%a"), amount=by_day[day])
        for day in window
    ]


def all_benefits(cards: Iterable[Card]) -> list[CardBenefit]:
    """Every known benefit across cards, tagged with its card."""
    return [
        CardBenefit(card_id=card.id, bank_name=card.bank_name, benefit=benefit)
        for card in cards
        for benefit in card.benefits or []
    ]
