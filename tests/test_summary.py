from datetime import date

from models import CategoryType
from snapshots import BudgetSnapshot, CategorySnapshot, TransactionSnapshot
from summary import coerce_amount, compute_summary, safe_ratio

RENT = CategorySnapshot(id=1, name="Rent", type=CategoryType.needs)
DINING = CategorySnapshot(id=2, name="Dining Out", type=CategoryType.wants)
EMERGENCY = CategorySnapshot(id=3, name="Emergency Fund", type=CategoryType.savings)
CATEGORIES = [RENT, DINING, EMERGENCY]


def _budget(income: float = 1000.0) -> BudgetSnapshot:
    return BudgetSnapshot(
        id=1,
        user_id=1,
        month="2025-03",
        total_income=income,
        needs_budget=income * 0.5,
        wants_budget=income * 0.3,
        savings_budget=income * 0.2,
    )


def _txn(txn_id: int, category_id, amount) -> TransactionSnapshot:
    return TransactionSnapshot(
        id=txn_id,
        category_id=category_id,
        amount=amount,
        transaction_date=date(2025, 3, 10),
    )


def test_overspent_needs_leaves_negative_remaining() -> None:
    txns = [_txn(1, RENT.id, 400.0), _txn(2, RENT.id, 200.0)]
    summary = compute_summary(_budget(), txns, CATEGORIES)

    assert summary.needs.spent == 600.0
    assert summary.needs.remaining == -100.0
    assert summary.total.budget == 1000.0
    assert summary.total.remaining == 400.0


def test_percentage_is_fixed_target_not_usage() -> None:
    txns = [_txn(1, DINING.id, 290.0)]
    summary = compute_summary(_budget(), txns, CATEGORIES)

    assert (summary.needs.percentage, summary.wants.percentage, summary.savings.percentage) == (
        50,
        30,
        20,
    )


def test_missing_category_counts_as_needs() -> None:
    txns = [_txn(1, None, 25.0), _txn(2, 99, 75.0), _txn(3, EMERGENCY.id, 10.0)]
    summary = compute_summary(_budget(), txns, CATEGORIES)

    assert summary.needs.spent == 100.0
    assert summary.savings.spent == 10.0
    assert summary.total.spent == 110.0


def test_embedded_category_used_when_not_in_list() -> None:
    custom = CategorySnapshot(id=42, name="Concerts", type=CategoryType.wants)
    txn = TransactionSnapshot(
        id=1,
        category_id=42,
        amount=30.0,
        transaction_date=date(2025, 3, 1),
        category=custom,
    )
    summary = compute_summary(_budget(), [txn], CATEGORIES)
    assert summary.wants.spent == 30.0


def test_malformed_amounts_contribute_nothing() -> None:
    txns = [
        _txn(1, RENT.id, float("nan")),
        _txn(2, RENT.id, -50.0),
        _txn(3, RENT.id, None),
        _txn(4, RENT.id, float("inf")),
        _txn(5, RENT.id, 20.0),
    ]
    summary = compute_summary(_budget(), txns, CATEGORIES)
    assert summary.needs.spent == 20.0


def test_zero_income_budget_is_safe() -> None:
    summary = compute_summary(_budget(0.0), [_txn(1, RENT.id, 10.0)], CATEGORIES)
    assert summary.total.budget == 0.0
    assert summary.total.remaining == -10.0
    assert summary.needs.remaining == -10.0


def test_empty_transactions_yield_zero_spend() -> None:
    summary = compute_summary(_budget(), [], CATEGORIES)
    assert summary.total.spent == 0.0
    assert summary.wants.remaining == 300.0


def test_summary_is_deterministic() -> None:
    txns = [_txn(1, RENT.id, 12.5), _txn(2, DINING.id, 7.25)]
    assert compute_summary(_budget(), txns, CATEGORIES) == compute_summary(
        _budget(), txns, CATEGORIES
    )


def test_coerce_amount_and_safe_ratio() -> None:
    assert coerce_amount("12.5") == 12.5
    assert coerce_amount("abc") == 0.0
    assert coerce_amount(True) == 0.0
    assert safe_ratio(5, 0) == 0.0
    assert safe_ratio(1, 4) == 0.25
