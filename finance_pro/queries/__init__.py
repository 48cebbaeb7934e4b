"""Dashboard aggregation package."""

from finance_pro.queries.stats import (
    DailyTotals,
    FinancialStats,
    StatsPeriod,
    compute_stats,
    daily_series,
    filter_by_period,
    recent,
)

__all__ = [
    "DailyTotals",
    "FinancialStats",
    "StatsPeriod",
    "compute_stats",
    "daily_series",
    "filter_by_period",
    "recent",
]
