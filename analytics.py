from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from models import CategoryType
from periods import Period, trailing_windows
from snapshots import (
    UNCATEGORIZED,
    UNCATEGORIZED_COLOR,
    CategorySnapshot,
    TransactionSnapshot,
)
from summary import (
    BudgetSummary,
    coerce_amount,
    effective_type,
    index_categories,
    resolve_category,
    safe_ratio,
)

TREND_WINDOW_DAYS = 30
TOP_CATEGORY_LIMIT = 5
WEEKS_PER_MONTH = 4.3
TREND_THRESHOLD_PCT = 15.0


def total_spent(transactions: Iterable[TransactionSnapshot]) -> float:
    return sum(coerce_amount(txn.amount) for txn in transactions)


def in_period(
    transactions: Iterable[TransactionSnapshot], period: Period
) -> list[TransactionSnapshot]:
    return [txn for txn in transactions if period.contains(txn.transaction_date)]


def spending_by_category(
    transactions: Sequence[TransactionSnapshot],
    categories: Iterable[CategorySnapshot] = (),
) -> dict[str, float]:
    by_id = index_categories(categories)
    totals: dict[str, float] = {}
    for txn in transactions:
        category = resolve_category(txn, by_id)
        name = category.name if category else UNCATEGORIZED
        totals[name] = totals.get(name, 0.0) + coerce_amount(txn.amount)
    return totals


def spending_by_type(
    transactions: Sequence[TransactionSnapshot],
    categories: Iterable[CategorySnapshot] = (),
) -> dict[CategoryType, float]:
    by_id = index_categories(categories)
    totals: dict[CategoryType, float] = {}
    for txn in transactions:
        category_type = effective_type(txn, by_id)
        totals[category_type] = totals.get(category_type, 0.0) + coerce_amount(
            txn.amount
        )
    return totals


def trend(
    transactions: Sequence[TransactionSnapshot],
    window_days: int = TREND_WINDOW_DAYS,
    *,
    today: Optional[date] = None,
) -> list[dict[str, object]]:
    """Daily spend for the trailing window, one zero-filled entry per day."""
    today = today or date.today()
    days: dict[date, float] = {}
    for offset in range(window_days - 1, -1, -1):
        days[today - timedelta(days=offset)] = 0.0

    for txn in transactions:
        if txn.transaction_date in days:
            days[txn.transaction_date] += coerce_amount(txn.amount)

    return [{"date": day, "amount": amount} for day, amount in days.items()]


def top_categories(
    transactions: Sequence[TransactionSnapshot],
    limit: int = TOP_CATEGORY_LIMIT,
    categories: Iterable[CategorySnapshot] = (),
) -> list[dict[str, object]]:
    by_id = index_categories(categories)
    grouped: dict[str, dict[str, object]] = {}
    for txn in transactions:
        category = resolve_category(txn, by_id)
        name = category.name if category else UNCATEGORIZED
        if name not in grouped:
            color = category.color if category else UNCATEGORIZED_COLOR
            grouped[name] = {"name": name, "amount": 0.0, "color": color}
        grouped[name]["amount"] += coerce_amount(txn.amount)

    # sorted() is stable, so ties keep first-encountered order.
    ranked = sorted(grouped.values(), key=lambda row: row["amount"], reverse=True)
    return ranked[: max(limit, 0)]


def period_comparison(
    current: Sequence[TransactionSnapshot],
    previous: Sequence[TransactionSnapshot],
) -> float:
    previous_total = total_spent(previous)
    if previous_total == 0:
        return 0.0
    return (total_spent(current) - previous_total) / previous_total * 100


def _totals_by_category_id(
    transactions: Iterable[TransactionSnapshot], by_id: dict[int, CategorySnapshot]
) -> dict[int, float]:
    totals: dict[int, float] = defaultdict(float)
    for txn in transactions:
        category = resolve_category(txn, by_id)
        if category is not None:
            totals[category.id] += coerce_amount(txn.amount)
    return totals


def category_trend_classification(
    recent: Sequence[TransactionSnapshot],
    previous: Sequence[TransactionSnapshot],
    categories: Sequence[CategorySnapshot],
) -> dict[str, list[str]]:
    by_id = index_categories(categories)
    recent_totals = _totals_by_category_id(recent, by_id)
    previous_totals = _totals_by_category_id(previous, by_id)

    trends: dict[str, list[str]] = {"increasing": [], "decreasing": [], "stable": []}
    for category in categories:
        previous_total = previous_totals.get(category.id, 0.0)
        if previous_total == 0:
            continue
        change = (recent_totals.get(category.id, 0.0) - previous_total) / previous_total
        change *= 100
        if change > TREND_THRESHOLD_PCT:
            trends["increasing"].append(category.name)
        elif change < -TREND_THRESHOLD_PCT:
            trends["decreasing"].append(category.name)
        else:
            trends["stable"].append(category.name)
    return trends


@dataclass(frozen=True)
class SpendingOverview:
    average_daily: float
    average_weekly: float
    average_monthly: float
    vs_last_month: float
    top_categories: list[dict[str, object]] = field(default_factory=list)
    trends: dict[str, list[str]] = field(default_factory=dict)


def spending_overview(
    transactions: Sequence[TransactionSnapshot],
    categories: Sequence[CategorySnapshot],
    window_days: int = TREND_WINDOW_DAYS,
    *,
    today: Optional[date] = None,
) -> SpendingOverview:
    """Summarize the trailing window and compare it with the window before."""
    current_window, previous_window = trailing_windows(window_days, today=today)
    recent = in_period(transactions, current_window)
    previous = in_period(transactions, previous_window)
    recent_total = total_spent(recent)

    by_id = index_categories(categories)
    recent_by_category = _totals_by_category_id(recent, by_id)
    shares = [
        {
            "name": category.name,
            "amount": recent_by_category.get(category.id, 0.0),
            "percentage": safe_ratio(recent_by_category.get(category.id, 0.0), recent_total)
            * 100,
        }
        for category in categories
    ]
    shares.sort(key=lambda row: row["amount"], reverse=True)

    return SpendingOverview(
        average_daily=recent_total / window_days if window_days else 0.0,
        average_weekly=recent_total / WEEKS_PER_MONTH,
        average_monthly=recent_total,
        vs_last_month=period_comparison(recent, previous),
        top_categories=shares[:TOP_CATEGORY_LIMIT],
        trends=category_trend_classification(recent, previous, categories),
    )


def bucket_comparison(
    current: BudgetSummary, previous: Optional[BudgetSummary]
) -> list[dict[str, object]]:
    if previous is None:
        return []

    rows: list[dict[str, object]] = []
    for category_type in CategoryType:
        now_spent = current.bucket(category_type).spent
        before_spent = previous.bucket(category_type).spent
        change = now_spent - before_spent
        rows.append(
            {
                "type": category_type.value.capitalize(),
                "change": change,
                "percentage": safe_ratio(change, before_spent) * 100
                if before_spent > 0
                else 0.0,
            }
        )
    return rows
