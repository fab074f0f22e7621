from datetime import date, timedelta

from analytics import (
    bucket_comparison,
    category_trend_classification,
    period_comparison,
    spending_by_category,
    spending_by_type,
    spending_overview,
    top_categories,
    trend,
)
from models import CategoryType
from snapshots import BudgetSnapshot, CategorySnapshot, TransactionSnapshot
from summary import compute_summary

TODAY = date(2025, 3, 30)

RENT = CategorySnapshot(id=1, name="Rent", type=CategoryType.needs, color="#3B82F6")
GROCERIES = CategorySnapshot(id=2, name="Groceries", type=CategoryType.needs, color="#10B981")
DINING = CategorySnapshot(id=3, name="Dining Out", type=CategoryType.wants, color="#F59E0B")
RETIREMENT = CategorySnapshot(id=4, name="Retirement", type=CategoryType.savings)
CATEGORIES = [RENT, GROCERIES, DINING, RETIREMENT]


def _txn(txn_id, category_id, amount, day=TODAY) -> TransactionSnapshot:
    return TransactionSnapshot(
        id=txn_id, category_id=category_id, amount=amount, transaction_date=day
    )


def test_spending_by_category_uses_uncategorized_bucket() -> None:
    txns = [_txn(1, RENT.id, 100.0), _txn(2, None, 5.0), _txn(3, 77, 2.5)]
    totals = spending_by_category(txns, CATEGORIES)
    assert totals == {"Rent": 100.0, "Uncategorized": 7.5}


def test_spending_by_type_sums_to_total() -> None:
    txns = [
        _txn(1, RENT.id, 100.0),
        _txn(2, DINING.id, 40.0),
        _txn(3, RETIREMENT.id, 60.0),
        _txn(4, None, 9.0),
    ]
    totals = spending_by_type(txns, CATEGORIES)
    assert totals[CategoryType.needs] == 109.0
    assert totals[CategoryType.wants] == 40.0
    assert totals[CategoryType.savings] == 60.0
    assert sum(totals.values()) == sum(t.amount for t in txns)


def test_trend_zero_fills_thirty_days() -> None:
    start = TODAY - timedelta(days=29)
    txns = [_txn(1, RENT.id, 50.0, start + timedelta(days=14))]
    points = trend(txns, 30, today=TODAY)

    assert len(points) == 30
    assert [p["amount"] for p in points].count(0.0) == 29
    assert [p for p in points if p["amount"] == 50.0] == [
        {"date": start + timedelta(days=14), "amount": 50.0}
    ]
    dates = [p["date"] for p in points]
    assert dates[0] == start
    assert dates[-1] == TODAY
    assert all(b - a == timedelta(days=1) for a, b in zip(dates, dates[1:]))


def test_trend_ignores_transactions_outside_window() -> None:
    txns = [_txn(1, RENT.id, 10.0, TODAY - timedelta(days=30))]
    points = trend(txns, 30, today=TODAY)
    assert sum(p["amount"] for p in points) == 0.0


def test_top_categories_sorted_and_truncated() -> None:
    txns = [
        _txn(1, GROCERIES.id, 30.0),
        _txn(2, RENT.id, 30.0),
        _txn(3, DINING.id, 50.0),
        _txn(4, None, 5.0),
    ]
    top = top_categories(txns, 3, CATEGORIES)

    assert [row["name"] for row in top] == ["Dining Out", "Groceries", "Rent"]
    assert top[1]["color"] == "#10B981"
    amounts = [row["amount"] for row in top]
    assert amounts == sorted(amounts, reverse=True)


def test_top_categories_uncategorized_color() -> None:
    top = top_categories([_txn(1, None, 5.0)], 5, CATEGORIES)
    assert top == [{"name": "Uncategorized", "amount": 5.0, "color": "#6B7280"}]


def test_period_comparison_handles_empty_baseline() -> None:
    assert period_comparison([_txn(1, RENT.id, 10.0)], []) == 0.0
    assert period_comparison([_txn(1, RENT.id, 150.0)], [_txn(2, RENT.id, 100.0)]) == 50.0


def test_category_trend_classification() -> None:
    previous = [
        _txn(1, RENT.id, 100.0),
        _txn(2, GROCERIES.id, 100.0),
        _txn(3, DINING.id, 100.0),
    ]
    recent = [
        _txn(4, RENT.id, 110.0),
        _txn(5, GROCERIES.id, 150.0),
        _txn(6, DINING.id, 50.0),
        _txn(7, RETIREMENT.id, 500.0),
    ]
    trends = category_trend_classification(recent, previous, CATEGORIES)
    assert trends == {
        "increasing": ["Groceries"],
        "decreasing": ["Dining Out"],
        "stable": ["Rent"],
    }


def test_spending_overview_averages() -> None:
    txns = [
        _txn(1, RENT.id, 300.0, TODAY - timedelta(days=3)),
        _txn(2, DINING.id, 130.0, TODAY),
        _txn(3, RENT.id, 200.0, TODAY - timedelta(days=40)),
    ]
    overview = spending_overview(txns, CATEGORIES, today=TODAY)

    assert overview.average_monthly == 430.0
    assert overview.average_daily == 430.0 / 30
    assert overview.average_weekly == 430.0 / 4.3
    assert overview.vs_last_month == 115.0
    assert overview.top_categories[0]["name"] == "Rent"
    assert overview.trends["increasing"] == ["Rent"]


def test_bucket_comparison_against_previous_month() -> None:
    budget = BudgetSnapshot(1, 1, "2025-03", 1000.0, 500.0, 300.0, 200.0)
    current = compute_summary(budget, [_txn(1, RENT.id, 150.0)], CATEGORIES)
    previous = compute_summary(budget, [_txn(2, RENT.id, 100.0)], CATEGORIES)

    rows = bucket_comparison(current, previous)
    assert rows[0] == {"type": "Needs", "change": 50.0, "percentage": 50.0}
    assert rows[1] == {"type": "Wants", "change": 0.0, "percentage": 0.0}
    assert bucket_comparison(current, None) == []
