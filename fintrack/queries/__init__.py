"""Aggregation package."""

from fintrack.queries.aggregations import (
    ALL_CARDS,
    CardBenefit,
    CardContribution,
    CategoryTotal,
    DailyActivityPoint,
    MilestoneProgress,
    MonthlyTrendPoint,
    PeriodTotals,
    PortfolioSummary,
    all_benefits,
    card_contributions,
    category_breakdown,
    current_year_spend_by_card,
    daily_activity,
    filter_by_card,
    milestone_progress,
    monthly_trend,
    period_totals,
    portfolio_summary,
)

__all__ = [
    "ALL_CARDS",
    "CardBenefit",
    "CardContribution",
    "CategoryTotal",
    "DailyActivityPoint",
    "MilestoneProgress",
    "MonthlyTrendPoint",
    "PeriodTotals",
    "PortfolioSummary",
    "all_benefits",
    "card_contributions",
    "category_breakdown",
    "current_year_spend_by_card",
    "daily_activity",
    "filter_by_card",
    "milestone_progress",
    "monthly_trend",
    "period_totals",
    "portfolio_summary",
]
