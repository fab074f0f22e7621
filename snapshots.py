"""Immutable views of ledger rows handed to the analytics engines.

The engines never touch ORM objects or sessions. The service layer converts
rows into these snapshots (cents become currency floats) once per request,
and tests build them directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from models import CategoryType

UNCATEGORIZED = "Uncategorized"
UNCATEGORIZED_COLOR = "#6B7280"


def cents_to_amount(cents: Optional[int]) -> float:
    return (cents or 0) / 100


@dataclass(frozen=True)
class CategorySnapshot:
    id: int
    name: str
    type: CategoryType
    icon: str = "Circle"
    color: str = UNCATEGORIZED_COLOR
    is_default: bool = False

    @classmethod
    def from_model(cls, row) -> CategorySnapshot:
        return cls(
            id=row.id,
            name=row.name,
            type=row.type,
            icon=row.icon,
            color=row.color,
            is_default=row.is_default,
        )


@dataclass(frozen=True)
class BudgetSnapshot:
    id: int
    user_id: int
    month: str
    total_income: float
    needs_budget: float
    wants_budget: float
    savings_budget: float

    @classmethod
    def from_model(cls, row) -> BudgetSnapshot:
        return cls(
            id=row.id,
            user_id=row.user_id,
            month=row.month,
            total_income=cents_to_amount(row.total_income_cents),
            needs_budget=cents_to_amount(row.needs_budget_cents),
            wants_budget=cents_to_amount(row.wants_budget_cents),
            savings_budget=cents_to_amount(row.savings_budget_cents),
        )

    def bucket(self, category_type: CategoryType) -> float:
        if category_type == CategoryType.wants:
            return self.wants_budget
        if category_type == CategoryType.savings:
            return self.savings_budget
        return self.needs_budget


@dataclass(frozen=True)
class TransactionSnapshot:
    id: int
    category_id: Optional[int]
    # Malformed rows may carry None or NaN here.
    amount: Optional[float]
    transaction_date: date
    description: str = ""
    category: Optional[CategorySnapshot] = None
    budget_id: Optional[int] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row) -> TransactionSnapshot:
        category = CategorySnapshot.from_model(row.category) if row.category else None
        return cls(
            id=row.id,
            category_id=row.category_id,
            amount=cents_to_amount(row.amount_cents),
            transaction_date=row.transaction_date,
            description=row.description or "",
            category=category,
            budget_id=row.budget_id,
            user_id=row.user_id,
            created_at=row.created_at,
        )


@dataclass(frozen=True)
class GoalSnapshot:
    id: int
    title: str
    target_amount: float
    current_amount: float
    deadline: Optional[date] = None
    is_completed: bool = False

    @classmethod
    def from_model(cls, row) -> GoalSnapshot:
        return cls(
            id=row.id,
            title=row.title,
            target_amount=cents_to_amount(row.target_amount_cents),
            current_amount=cents_to_amount(row.current_amount_cents),
            deadline=row.deadline,
            is_completed=row.is_completed,
        )
