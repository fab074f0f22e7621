import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import Budget, RecurringFrequency, RecurringTransaction, Transaction
from periods import local_today, month_key

logger = logging.getLogger(__name__)

MAX_CATCH_UP = 366

_MONTH_STEPS = {
    RecurringFrequency.monthly: 1,
    RecurringFrequency.quarterly: 3,
    RecurringFrequency.yearly: 12,
}


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def _add_months(base: date, months: int, *, desired_day: int) -> date:
    total_months = base.month - 1 + months
    year = base.year + total_months // 12
    month = total_months % 12 + 1
    return date(year, month, min(desired_day, days_in_month(year, month)))


def calculate_next_date(
    frequency: RecurringFrequency, from_date: date, anchor_day: Optional[int] = None
) -> date:
    """Step one period forward from `from_date`.

    Month-based frequencies aim for `anchor_day` (the schedule's original day
    of month) and fall back to the last day of shorter months.
    """
    frequency = RecurringFrequency(frequency)
    if frequency == RecurringFrequency.daily:
        return from_date + timedelta(days=1)
    if frequency == RecurringFrequency.weekly:
        return from_date + timedelta(weeks=1)
    if frequency == RecurringFrequency.biweekly:
        return from_date + timedelta(weeks=2)
    return _add_months(
        from_date,
        _MONTH_STEPS[frequency],
        desired_day=anchor_day or from_date.day,
    )


class RecurringEngine:
    def __init__(self, session: Session) -> None:
        self.session = session
        self._budgets: dict[tuple[int, str], Optional[Budget]] = {}

    def _budget_for(self, user_id: int, occurrence_date: date) -> Optional[Budget]:
        key = (user_id, month_key(occurrence_date))
        if key not in self._budgets:
            self._budgets[key] = self.session.scalar(
                select(Budget).where(Budget.user_id == user_id, Budget.month == key[1])
            )
        return self._budgets[key]

    def catch_up(self, recurring: RecurringTransaction, today: Optional[date] = None) -> int:
        today = today or local_today()
        anchor_day = recurring.start_date.day
        posted = 0
        iterations = 0
        while recurring.next_occurrence <= today and iterations < MAX_CATCH_UP:
            if recurring.end_date and recurring.next_occurrence > recurring.end_date:
                break
            occurrence_date = recurring.next_occurrence
            try:
                # A failed post only rolls back its own savepoint.
                with self.session.begin_nested():
                    if self._post_occurrence(recurring, occurrence_date):
                        posted += 1
            except Exception:
                logger.exception(
                    "recurring_post_failed: id=%s occurrence=%s",
                    recurring.id,
                    occurrence_date,
                )
                break
            recurring.next_occurrence = calculate_next_date(
                recurring.frequency, occurrence_date, anchor_day
            )
            iterations += 1
        if iterations >= MAX_CATCH_UP:
            logger.warning("recurring_catch_up_capped: id=%s", recurring.id)
        return posted

    def post_due(self, today: Optional[date] = None) -> int:
        """Materialize every due occurrence and return how many were posted."""
        today = today or local_today()
        stmt = (
            select(RecurringTransaction)
            .where(
                RecurringTransaction.is_active.is_(True),
                RecurringTransaction.auto_create.is_(True),
                RecurringTransaction.next_occurrence <= today,
            )
            .order_by(RecurringTransaction.next_occurrence, RecurringTransaction.id)
        )
        count = 0
        for recurring in self.session.scalars(stmt).all():
            count += self.catch_up(recurring, today)
        self.session.flush()
        return count

    def _post_occurrence(
        self, recurring: RecurringTransaction, occurrence_date: date
    ) -> bool:
        existing = self.session.execute(
            select(Transaction.id)
            .where(
                Transaction.user_id == recurring.user_id,
                Transaction.origin_recurring_id == recurring.id,
                Transaction.occurrence_date == occurrence_date,
            )
            .limit(1)
        ).scalar_one_or_none()
        if existing:
            return False

        budget = self._budget_for(recurring.user_id, occurrence_date)
        if budget is None:
            logger.info(
                "recurring_skipped_no_budget: id=%s occurrence=%s",
                recurring.id,
                occurrence_date,
            )
            return False

        self.session.add(
            Transaction(
                user_id=recurring.user_id,
                budget_id=budget.id,
                category_id=recurring.category_id,
                amount_cents=recurring.amount_cents,
                description=recurring.description,
                transaction_date=occurrence_date,
                origin_recurring_id=recurring.id,
                occurrence_date=occurrence_date,
            )
        )
        self.session.flush()
        return True
