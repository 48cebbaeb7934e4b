"""
Dashboard aggregation.

DESIGN DECISION: Aggregation is DETERMINISTIC and runs on stored data only.
The model can talk about the user's finances in a reply, but every number
the dashboard shows comes from here.

All functions are pure: they take the transaction list (most recent first,
as the local store returns it) and never touch storage.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from finance_pro.models.transaction import Transaction


class StatsPeriod(str, Enum):
    """Dashboard period filter."""
    TODAY = "today"
    WEEK = "week"    # last 7 days
    MONTH = "month"  # current calendar month


class FinancialStats(BaseModel):
    """Totals shown in the dashboard header."""
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    top_category: Optional[str] = None


class DailyTotals(BaseModel):
    """One point of the daily income/expense chart."""
    model_config = ConfigDict(frozen=True)

    day: date
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def filter_by_period(
    transactions: Iterable[Transaction],
    period: Union[StatsPeriod, str],
    now: Optional[datetime] = None,
) -> list[Transaction]:
    """
    Keep the transactions that fall in the period, order preserved.

    Raises:
        ValueError: for an unknown period name
    """
    period = StatsPeriod(period)
    now = _as_utc(now or datetime.now(timezone.utc))

    if period == StatsPeriod.TODAY:
        def keep(at: datetime) -> bool:
            return at.date() == now.date()
    elif period == StatsPeriod.WEEK:
        start = now - timedelta(days=7)

        def keep(at: datetime) -> bool:
            return at >= start
    else:
        def keep(at: datetime) -> bool:
            return (at.year, at.month) == (now.year, now.month)

    return [tx for tx in transactions if keep(_as_utc(tx.occurred_at))]


def compute_stats(transactions: Iterable[Transaction]) -> FinancialStats:
    """
    Income, expenses, balance and the category with the most spending.

    Income never counts towards the top category.
    """
    income = Decimal("0")
    expenses = Decimal("0")
    by_category: dict[str, Decimal] = defaultdict(Decimal)

    for tx in transactions:
        if tx.is_income:
            income += tx.amount
        else:
            expenses += tx.amount
            by_category[tx.category] += tx.amount

    top_category = None
    if by_category:
        top_category = max(by_category.items(), key=lambda item: item[1])[0]

    return FinancialStats(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        top_category=top_category,
    )


def daily_series(
    transactions: Sequence[Transaction],
    days: int = 7,
    today: Optional[date] = None,
) -> list[DailyTotals]:
    """
    Per-day totals for the last `days` days, oldest first.

    A transaction belongs to the day written in its timestamp
    (the YYYY-MM-DD prefix), with no timezone conversion.
    """
    today = today or datetime.now(timezone.utc).date()
    series = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        prefix = day.isoformat()
        day_txs = [tx for tx in transactions if tx.timestamp.startswith(prefix)]
        series.append(DailyTotals(
            day=day,
            income=sum((tx.amount for tx in day_txs if tx.is_income), Decimal("0")),
            expenses=sum((tx.amount for tx in day_txs if tx.is_expense), Decimal("0")),
        ))
    return series


def recent(transactions: Sequence[Transaction], limit: int = 5) -> list[Transaction]:
    """Head of a most-recent-first list."""
    return list(transactions[:limit])
