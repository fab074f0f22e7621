from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session, joinedload

from analytics import (
    bucket_comparison,
    spending_by_category,
    spending_by_type,
    spending_overview,
    top_categories,
    trend,
)
from config import get_settings
from csv_utils import export_budget_summary, export_transactions
from insights import generate_insights, generate_recommendations
from models import (
    BillReminder,
    Budget,
    Category,
    CategoryType,
    RecurringTransaction,
    SavingsGoal,
    Transaction,
)
from periods import Period, local_today, month_period, previous_month_key
from schemas import (
    BillReminderIn,
    BudgetIn,
    CategoryIn,
    CategoryUpdateIn,
    RecurringTransactionIn,
    SavingsGoalIn,
    TransactionIn,
)
from snapshots import (
    BudgetSnapshot,
    CategorySnapshot,
    GoalSnapshot,
    TransactionSnapshot,
)
from summary import TARGET_PERCENTAGES, BudgetSummary, compute_summary

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: list[tuple[str, CategoryType, str, str]] = [
    ("Housing", CategoryType.needs, "Home", "#3B82F6"),
    ("Utilities", CategoryType.needs, "Zap", "#0EA5E9"),
    ("Groceries", CategoryType.needs, "ShoppingCart", "#10B981"),
    ("Transportation", CategoryType.needs, "Car", "#6366F1"),
    ("Insurance", CategoryType.needs, "Shield", "#8B5CF6"),
    ("Healthcare", CategoryType.needs, "Heart", "#EF4444"),
    ("Dining Out", CategoryType.wants, "Coffee", "#F59E0B"),
    ("Entertainment", CategoryType.wants, "Film", "#EC4899"),
    ("Shopping", CategoryType.wants, "ShoppingBag", "#F97316"),
    ("Subscriptions", CategoryType.wants, "Tv", "#A855F7"),
    ("Travel", CategoryType.wants, "Plane", "#14B8A6"),
    ("Emergency Fund", CategoryType.savings, "PiggyBank", "#22C55E"),
    ("Retirement", CategoryType.savings, "TrendingUp", "#84CC16"),
    ("Investments", CategoryType.savings, "BarChart", "#06B6D4"),
    ("Debt Payment", CategoryType.savings, "CreditCard", "#64748B"),
]


def get_current_user_id() -> int:
    return get_settings().user_id


def allocate_buckets(total_income_cents: int) -> dict[CategoryType, int]:
    income = Decimal(total_income_cents)
    return {
        category_type: int(
            (income * pct / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        )
        for category_type, pct in TARGET_PERCENTAGES.items()
    }


class CategoryService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def seed_defaults(self) -> int:
        existing = {
            (c.type, c.name.lower())
            for c in self.session.scalars(
                select(Category).where(Category.is_default.is_(True))
            )
        }
        created = 0
        for name, category_type, icon, color in DEFAULT_CATEGORIES:
            if (category_type, name.lower()) in existing:
                continue
            self.session.add(
                Category(
                    user_id=None,
                    name=name,
                    type=category_type,
                    icon=icon,
                    color=color,
                    is_default=True,
                )
            )
            created += 1
        self.session.commit()
        if created:
            logger.info("seeded %d default categories", created)
        return created

    def list_all(self, *, defaults_only: bool = False) -> list[Category]:
        """Merge system defaults with the user's own categories.

        A user category with the same type and (case-insensitive) name as a
        default replaces that default in the result.
        """
        stmt = select(Category).order_by(Category.type, Category.name)
        if defaults_only:
            return list(self.session.scalars(stmt.where(Category.is_default.is_(True))))

        rows = self.session.scalars(
            stmt.where(
                or_(Category.is_default.is_(True), Category.user_id == self.user_id)
            )
        ).all()
        overridden = {
            (c.type, c.name.lower()) for c in rows if not c.is_default
        }
        return [
            c
            for c in rows
            if not c.is_default or (c.type, c.name.lower()) not in overridden
        ]

    def list_by_type(self, category_type: CategoryType) -> list[Category]:
        return [c for c in self.list_all() if c.type == category_type]

    def snapshots(self) -> list[CategorySnapshot]:
        return [CategorySnapshot.from_model(c) for c in self.list_all()]

    def get(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if not category or (
            not category.is_default and category.user_id != self.user_id
        ):
            raise ValueError("Category not found")
        return category

    def _owned(self, category_id: int) -> Category:
        category = self.get(category_id)
        if category.is_default:
            raise ValueError("Default categories cannot be modified")
        return category

    def create(self, data: CategoryIn) -> Category:
        existing = self.session.scalar(
            select(Category).where(
                Category.user_id == self.user_id,
                Category.type == data.type,
                func.lower(Category.name) == data.name.strip().lower(),
            )
        )
        if existing:
            raise ValueError("Category with this name already exists")
        category = Category(
            user_id=self.user_id,
            name=data.name.strip(),
            type=data.type,
            icon=data.icon,
            color=data.color,
            is_default=False,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def update(self, category_id: int, data: CategoryUpdateIn) -> Category:
        category = self._owned(category_id)
        category.name = data.name.strip()
        category.icon = data.icon
        category.color = data.color
        self.session.commit()
        return category

    def delete(self, category_id: int) -> None:
        category = self._owned(category_id)
        in_use = self.session.scalar(
            select(func.count(RecurringTransaction.id)).where(
                RecurringTransaction.category_id == category_id
            )
        )
        if in_use:
            raise ValueError("Category is used by recurring transactions")
        # Dependent rows are kept and lose their category; transactions fall
        # back to the uncategorized bucket.
        for model in (Transaction, SavingsGoal, BillReminder):
            for row in self.session.scalars(
                select(model).where(model.category_id == category_id)
            ):
                row.category_id = None
        self.session.flush()
        self.session.delete(category)
        self.session.commit()


class BudgetService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    @staticmethod
    def _apply_income(budget: Budget, total_income_cents: int) -> None:
        buckets = allocate_buckets(total_income_cents)
        budget.total_income_cents = total_income_cents
        budget.needs_budget_cents = buckets[CategoryType.needs]
        budget.wants_budget_cents = buckets[CategoryType.wants]
        budget.savings_budget_cents = buckets[CategoryType.savings]

    def create(self, data: BudgetIn) -> Budget:
        month_period(data.month)
        if self.get_by_month(data.month):
            raise ValueError("Budget for this month already exists")
        budget = Budget(user_id=self.user_id, month=data.month)
        self._apply_income(budget, data.total_income_cents)
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def update(self, budget_id: int, total_income_cents: int) -> Budget:
        if total_income_cents < 0:
            raise ValueError("Income must not be negative")
        budget = self.get(budget_id)
        self._apply_income(budget, total_income_cents)
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def get(self, budget_id: int) -> Budget:
        budget = self.session.get(Budget, budget_id)
        if not budget or budget.user_id != self.user_id:
            raise ValueError("Budget not found")
        return budget

    def get_by_month(self, month: str) -> Optional[Budget]:
        return self.session.scalar(
            select(Budget).where(Budget.user_id == self.user_id, Budget.month == month)
        )

    def list_all(self) -> list[Budget]:
        return list(
            self.session.scalars(
                select(Budget)
                .where(Budget.user_id == self.user_id)
                .order_by(Budget.month.desc())
            )
        )

    def delete(self, budget_id: int) -> None:
        budget = self.get(budget_id)
        self.session.execute(
            delete(Transaction).where(Transaction.budget_id == budget.id)
        )
        self.session.delete(budget)
        self.session.commit()

    def snapshot(self, budget_id: int) -> BudgetSnapshot:
        return BudgetSnapshot.from_model(self.get(budget_id))

    def summary(self, budget_id: int) -> BudgetSummary:
        budget = self.snapshot(budget_id)
        transactions = TransactionService(self.session, self.user_id).snapshots(
            budget_id=budget_id
        )
        categories = CategoryService(self.session, self.user_id).snapshots()
        return compute_summary(budget, transactions, categories)

    def export_summary_csv(self, budget_id: int) -> str:
        budget = self.get(budget_id)
        return export_budget_summary(self.summary(budget_id), budget.month)


class TransactionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def _validate(self, data: TransactionIn) -> None:
        BudgetService(self.session, self.user_id).get(data.budget_id)
        if data.category_id is not None:
            CategoryService(self.session, self.user_id).get(data.category_id)

    def create(self, data: TransactionIn) -> Transaction:
        self._validate(data)
        txn = Transaction(
            user_id=self.user_id,
            budget_id=data.budget_id,
            category_id=data.category_id,
            amount_cents=data.amount_cents,
            description=data.description.strip(),
            transaction_date=data.transaction_date,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def get(self, transaction_id: int) -> Transaction:
        txn = self.session.scalar(
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(
                Transaction.user_id == self.user_id, Transaction.id == transaction_id
            )
        )
        if not txn:
            raise ValueError("Transaction not found")
        return txn

    def update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        txn = self.get(transaction_id)
        self._validate(data)
        txn.budget_id = data.budget_id
        txn.category_id = data.category_id
        txn.amount_cents = data.amount_cents
        txn.description = data.description.strip()
        txn.transaction_date = data.transaction_date
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()

    def _base_stmt(self):
        return (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(Transaction.user_id == self.user_id)
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        )

    def list_by_budget(self, budget_id: int) -> list[Transaction]:
        return list(
            self.session.scalars(
                self._base_stmt().where(Transaction.budget_id == budget_id)
            )
        )

    def list_for_period(self, period: Period) -> list[Transaction]:
        return list(
            self.session.scalars(
                self._base_stmt().where(
                    Transaction.transaction_date.between(period.start, period.end)
                )
            )
        )

    def recent(self, limit: int = 10) -> list[Transaction]:
        return list(self.session.scalars(self._base_stmt().limit(limit)))

    def snapshots(
        self, *, budget_id: Optional[int] = None, period: Optional[Period] = None
    ) -> list[TransactionSnapshot]:
        if budget_id is not None:
            rows = self.list_by_budget(budget_id)
        elif period is not None:
            rows = self.list_for_period(period)
        else:
            raise ValueError("Either a budget or a period is required")
        return [TransactionSnapshot.from_model(row) for row in rows]

    def export_csv(self, budget_id: int) -> str:
        BudgetService(self.session, self.user_id).get(budget_id)
        return export_transactions(self.list_by_budget(budget_id))


class GoalService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def get(self, goal_id: int) -> SavingsGoal:
        goal = self.session.get(SavingsGoal, goal_id)
        if not goal or goal.user_id != self.user_id:
            raise ValueError("Goal not found")
        return goal

    def create(self, data: SavingsGoalIn) -> SavingsGoal:
        if data.category_id is not None:
            CategoryService(self.session, self.user_id).get(data.category_id)
        goal = SavingsGoal(
            user_id=self.user_id,
            title=data.title.strip(),
            target_amount_cents=data.target_amount_cents,
            current_amount_cents=data.current_amount_cents,
            deadline=data.deadline,
            category_id=data.category_id,
            is_completed=data.current_amount_cents >= data.target_amount_cents,
        )
        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def update(self, goal_id: int, data: SavingsGoalIn) -> SavingsGoal:
        goal = self.get(goal_id)
        if data.category_id is not None:
            CategoryService(self.session, self.user_id).get(data.category_id)
        goal.title = data.title.strip()
        goal.target_amount_cents = data.target_amount_cents
        goal.current_amount_cents = data.current_amount_cents
        goal.deadline = data.deadline
        goal.category_id = data.category_id
        goal.is_completed = data.current_amount_cents >= data.target_amount_cents
        self.session.commit()
        return goal

    def update_progress(self, goal_id: int, amount_cents: int) -> SavingsGoal:
        goal = self.get(goal_id)
        new_amount = goal.current_amount_cents + amount_cents
        if new_amount < 0:
            raise ValueError("Goal progress cannot go below zero")
        goal.current_amount_cents = new_amount
        goal.is_completed = new_amount >= goal.target_amount_cents
        self.session.commit()
        return goal

    def toggle_complete(self, goal_id: int, is_completed: bool) -> SavingsGoal:
        goal = self.get(goal_id)
        goal.is_completed = is_completed
        self.session.commit()
        return goal

    def delete(self, goal_id: int) -> None:
        goal = self.get(goal_id)
        self.session.delete(goal)
        self.session.commit()

    def list_all(self) -> list[SavingsGoal]:
        return list(
            self.session.scalars(
                select(SavingsGoal)
                .where(SavingsGoal.user_id == self.user_id)
                .order_by(SavingsGoal.created_at.desc(), SavingsGoal.id.desc())
            )
        )

    def list_active(self) -> list[SavingsGoal]:
        return list(
            self.session.scalars(
                select(SavingsGoal)
                .where(
                    SavingsGoal.user_id == self.user_id,
                    SavingsGoal.is_completed.is_(False),
                )
                .order_by(
                    SavingsGoal.deadline.is_(None),
                    SavingsGoal.deadline.asc(),
                    SavingsGoal.id.asc(),
                )
            )
        )

    def active_snapshots(self) -> list[GoalSnapshot]:
        return [GoalSnapshot.from_model(goal) for goal in self.list_active()]


class BillService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def get(self, bill_id: int) -> BillReminder:
        bill = self.session.get(BillReminder, bill_id)
        if not bill or bill.user_id != self.user_id:
            raise ValueError("Bill not found")
        return bill

    def _apply(self, bill: BillReminder, data: BillReminderIn) -> None:
        if data.category_id is not None:
            CategoryService(self.session, self.user_id).get(data.category_id)
        bill.title = data.title.strip()
        bill.amount_cents = data.amount_cents
        bill.due_date = data.due_date
        bill.frequency = data.frequency
        bill.category_id = data.category_id
        bill.reminder_days = data.reminder_days
        bill.notes = data.notes

    def create(self, data: BillReminderIn) -> BillReminder:
        bill = BillReminder(user_id=self.user_id, is_paid=False)
        self._apply(bill, data)
        self.session.add(bill)
        self.session.commit()
        self.session.refresh(bill)
        return bill

    def update(self, bill_id: int, data: BillReminderIn) -> BillReminder:
        bill = self.get(bill_id)
        self._apply(bill, data)
        self.session.commit()
        return bill

    def delete(self, bill_id: int) -> None:
        bill = self.get(bill_id)
        self.session.delete(bill)
        self.session.commit()

    def list_all(self) -> list[BillReminder]:
        return list(
            self.session.scalars(
                select(BillReminder)
                .where(BillReminder.user_id == self.user_id)
                .order_by(BillReminder.due_date.asc(), BillReminder.id.asc())
            )
        )

    def upcoming(self, days: int = 7, *, today: Optional[date] = None) -> list[BillReminder]:
        today = today or local_today()
        return list(
            self.session.scalars(
                select(BillReminder)
                .where(
                    BillReminder.user_id == self.user_id,
                    BillReminder.is_paid.is_(False),
                    BillReminder.due_date.between(today, today + timedelta(days=days)),
                )
                .order_by(BillReminder.due_date.asc(), BillReminder.id.asc())
            )
        )

    def mark_paid(self, bill_id: int, is_paid: bool = True) -> BillReminder:
        bill = self.get(bill_id)
        bill.is_paid = is_paid
        self.session.commit()
        return bill


class RecurringTransactionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def get(self, recurring_id: int) -> RecurringTransaction:
        recurring = self.session.get(RecurringTransaction, recurring_id)
        if not recurring or recurring.user_id != self.user_id:
            raise ValueError("Recurring transaction not found")
        return recurring

    def _apply(self, recurring: RecurringTransaction, data: RecurringTransactionIn) -> None:
        CategoryService(self.session, self.user_id).get(data.category_id)
        recurring.category_id = data.category_id
        recurring.amount_cents = data.amount_cents
        recurring.description = data.description.strip()
        recurring.frequency = data.frequency
        recurring.start_date = data.start_date
        recurring.end_date = data.end_date
        recurring.auto_create = data.auto_create
        recurring.is_active = data.is_active

    def create(self, data: RecurringTransactionIn) -> RecurringTransaction:
        recurring = RecurringTransaction(
            user_id=self.user_id, next_occurrence=data.start_date
        )
        self._apply(recurring, data)
        self.session.add(recurring)
        self.session.commit()
        self.session.refresh(recurring)
        return recurring

    def update(self, recurring_id: int, data: RecurringTransactionIn) -> RecurringTransaction:
        recurring = self.get(recurring_id)
        start_changed = recurring.start_date != data.start_date
        self._apply(recurring, data)
        if start_changed:
            recurring.next_occurrence = data.start_date
        self.session.commit()
        return recurring

    def delete(self, recurring_id: int) -> None:
        recurring = self.get(recurring_id)
        for txn in recurring.transactions:
            txn.origin_recurring_id = None
        self.session.delete(recurring)
        self.session.commit()

    def list_all(self) -> list[RecurringTransaction]:
        return list(
            self.session.scalars(
                select(RecurringTransaction)
                .options(joinedload(RecurringTransaction.category))
                .where(RecurringTransaction.user_id == self.user_id)
                .order_by(
                    RecurringTransaction.next_occurrence.asc(),
                    RecurringTransaction.id.asc(),
                )
            )
        )

    def list_active(self) -> list[RecurringTransaction]:
        return [r for r in self.list_all() if r.is_active]

    def toggle_active(self, recurring_id: int, is_active: bool) -> RecurringTransaction:
        recurring = self.get(recurring_id)
        recurring.is_active = is_active
        self.session.commit()
        return recurring


class InsightsService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.budgets = BudgetService(session, self.user_id)
        self.transactions = TransactionService(session, self.user_id)
        self.categories = CategoryService(session, self.user_id)

    def _inputs(
        self, budget_id: int
    ) -> tuple[BudgetSnapshot, list[TransactionSnapshot], list[CategorySnapshot]]:
        budget = self.budgets.snapshot(budget_id)
        return (
            budget,
            self.transactions.snapshots(budget_id=budget_id),
            self.categories.snapshots(),
        )

    def recommendations(self, budget_id: int, *, today: Optional[date] = None):
        budget, transactions, categories = self._inputs(budget_id)
        goals = GoalService(self.session, self.user_id).active_snapshots()
        return generate_recommendations(
            self.user_id,
            budget,
            transactions,
            categories,
            goals,
            today=today or local_today(),
        )

    def insights(self, budget_id: int):
        budget, transactions, categories = self._inputs(budget_id)
        summary = compute_summary(budget, transactions, categories)
        return generate_insights(summary, transactions)

    def spending_overview(self, budget_id: int, *, today: Optional[date] = None):
        _, transactions, categories = self._inputs(budget_id)
        return spending_overview(
            transactions, categories, today=today or local_today()
        )

    def previous_summary(self, budget: BudgetSnapshot) -> Optional[BudgetSummary]:
        previous = self.budgets.get_by_month(previous_month_key(budget.month))
        if previous is None:
            return None
        return self.budgets.summary(previous.id)

    def dashboard(self, budget_id: int, *, today: Optional[date] = None) -> dict[str, object]:
        today = today or local_today()
        budget, transactions, categories = self._inputs(budget_id)
        summary = compute_summary(budget, transactions, categories)
        goals = GoalService(self.session, self.user_id).active_snapshots()
        upcoming = BillService(self.session, self.user_id).upcoming(today=today)
        logger.debug(
            "dashboard: budget=%s transactions=%d categories=%d",
            budget_id,
            len(transactions),
            len(categories),
        )
        return {
            "budget": budget,
            "summary": summary,
            "insights": generate_insights(summary, transactions),
            "recommendations": generate_recommendations(
                self.user_id, budget, transactions, categories, goals, today=today
            ),
            "trend": trend(transactions, today=today),
            "top_categories": top_categories(transactions, categories=categories),
            "by_category": spending_by_category(transactions, categories),
            "by_type": spending_by_type(transactions, categories),
            "overview": spending_overview(transactions, categories, today=today),
            "comparison": bucket_comparison(summary, self.previous_summary(budget)),
            "upcoming_bills": len(upcoming),
        }
