from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from models import CategoryType
from snapshots import BudgetSnapshot, CategorySnapshot, TransactionSnapshot

logger = logging.getLogger(__name__)

TARGET_PERCENTAGES: dict[CategoryType, int] = {
    CategoryType.needs: 50,
    CategoryType.wants: 30,
    CategoryType.savings: 20,
}


def coerce_amount(value: object) -> float:
    """Return a usable non-negative amount, or 0 for anything malformed."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        logger.debug("ignoring non-numeric amount %r", value)
        return 0.0
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        logger.debug("ignoring out-of-range amount %r", value)
        return 0.0
    return amount


def safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


def index_categories(
    categories: Iterable[CategorySnapshot],
) -> dict[int, CategorySnapshot]:
    return {category.id: category for category in categories}


def resolve_category(
    txn: TransactionSnapshot, by_id: Mapping[int, CategorySnapshot]
) -> Optional[CategorySnapshot]:
    if txn.category_id is not None and txn.category_id in by_id:
        return by_id[txn.category_id]
    return txn.category


def category_bucket(category: Optional[CategorySnapshot]) -> CategoryType:
    """Bucket of a category; missing or unknown types count as needs."""
    if category is None:
        return CategoryType.needs
    try:
        return CategoryType(category.type)
    except ValueError:
        return CategoryType.needs


def effective_type(
    txn: TransactionSnapshot, by_id: Mapping[int, CategorySnapshot]
) -> CategoryType:
    return category_bucket(resolve_category(txn, by_id))


@dataclass(frozen=True)
class BucketSummary:
    budget: float
    spent: float
    remaining: float
    percentage: int


@dataclass(frozen=True)
class TotalSummary:
    budget: float
    spent: float
    remaining: float


@dataclass(frozen=True)
class BudgetSummary:
    needs: BucketSummary
    wants: BucketSummary
    savings: BucketSummary
    total: TotalSummary

    def bucket(self, category_type: CategoryType) -> BucketSummary:
        return getattr(self, CategoryType(category_type).value)


def compute_summary(
    budget: BudgetSnapshot,
    transactions: Sequence[TransactionSnapshot],
    categories: Iterable[CategorySnapshot] = (),
) -> BudgetSummary:
    """Aggregate spend per bucket against the budget's stored allocations.

    `percentage` carries the fixed 50/30/20 target, not actual usage. The
    caller decides which transactions belong to the budget period.
    """
    by_id = index_categories(categories)
    spent = {category_type: 0.0 for category_type in CategoryType}
    for txn in transactions:
        spent[effective_type(txn, by_id)] += coerce_amount(txn.amount)

    buckets: dict[CategoryType, BucketSummary] = {}
    for category_type in CategoryType:
        allocation = coerce_amount(budget.bucket(category_type))
        buckets[category_type] = BucketSummary(
            budget=allocation,
            spent=spent[category_type],
            remaining=allocation - spent[category_type],
            percentage=TARGET_PERCENTAGES[category_type],
        )

    income = coerce_amount(budget.total_income)
    total_spent = sum(spent.values())
    return BudgetSummary(
        needs=buckets[CategoryType.needs],
        wants=buckets[CategoryType.wants],
        savings=buckets[CategoryType.savings],
        total=TotalSummary(
            budget=income, spent=total_spent, remaining=income - total_spent
        ),
    )
