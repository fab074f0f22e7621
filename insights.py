"""Insight and recommendation rules.

Both generators are pure: they take already-loaded snapshots (plus an
injected `today`/`now`) and return value objects for the presentation layer.
Insights keep the order the checks run in; recommendations are sorted by
priority, highest first, with generation order kept for ties.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Sequence

from analytics import (
    TREND_WINDOW_DAYS,
    category_trend_classification,
    in_period,
    period_comparison,
    top_categories,
    total_spent,
)
from models import CategoryType
from periods import trailing_windows
from snapshots import (
    BudgetSnapshot,
    CategorySnapshot,
    GoalSnapshot,
    TransactionSnapshot,
)
from summary import (
    BudgetSummary,
    category_bucket,
    coerce_amount,
    effective_type,
    index_categories,
    resolve_category,
    safe_ratio,
)

SUBSCRIPTION_KEYWORDS = ("subscription", "streaming")


class InsightType(str, Enum):
    warning = "warning"
    success = "success"
    info = "info"
    tip = "tip"


def format_money(amount: float) -> str:
    return f"${amount:.2f}"


def format_pct(value: float) -> str:
    return f"{value:.1f}%"


@dataclass(frozen=True)
class SpendingInsight:
    type: InsightType
    title: str
    message: str
    icon: str


@dataclass(frozen=True)
class Recommendation:
    id: str
    type: InsightType
    category: str
    title: str
    message: str
    actionable: bool
    priority: int
    created_at: datetime


def generate_insights(
    summary: BudgetSummary, transactions: Sequence[TransactionSnapshot]
) -> list[SpendingInsight]:
    insights: list[SpendingInsight] = []
    needs, wants, savings, total = (
        summary.needs,
        summary.wants,
        summary.savings,
        summary.total,
    )

    if needs.spent > needs.budget:
        insights.append(
            SpendingInsight(
                type=InsightType.warning,
                title="Over Budget on Needs",
                message=(
                    "You've exceeded your needs budget by "
                    f"{format_money(needs.spent - needs.budget)}"
                ),
                icon="AlertTriangle",
            )
        )

    if wants.spent > wants.budget:
        insights.append(
            SpendingInsight(
                type=InsightType.warning,
                title="Over Budget on Wants",
                message=(
                    "You've exceeded your wants budget by "
                    f"{format_money(wants.spent - wants.budget)}"
                ),
                icon="AlertTriangle",
            )
        )

    needs_pct = safe_ratio(needs.spent, needs.budget) * 100
    if needs.budget > 0 and needs_pct < 50:
        insights.append(
            SpendingInsight(
                type=InsightType.success,
                title="Great Job on Essentials!",
                message=f"You're only using {format_pct(needs_pct)} of your needs budget",
                icon="TrendingDown",
            )
        )

    if savings.budget > 0 and savings.spent >= savings.budget * 0.9:
        savings_pct = safe_ratio(savings.spent, savings.budget) * 100
        insights.append(
            SpendingInsight(
                type=InsightType.success,
                title="Savings Goal Nearly Met!",
                message=f"You're at {format_pct(savings_pct)} of your savings goal",
                icon="Target",
            )
        )

    top = top_categories(transactions, 1)
    if top and top[0]["amount"] > total.budget * 0.25:
        # Share of what was spent, while the trigger compares against the budget.
        share = safe_ratio(top[0]["amount"], total.spent) * 100
        insights.append(
            SpendingInsight(
                type=InsightType.info,
                title="Top Spending Category",
                message=f"{top[0]['name']} accounts for {format_pct(share)} of your spending",
                icon="Info",
            )
        )

    remaining_pct = safe_ratio(total.remaining, total.budget) * 100
    if 0 < remaining_pct < 10:
        insights.append(
            SpendingInsight(
                type=InsightType.warning,
                title="Low Budget Remaining",
                message=f"Only {format_pct(remaining_pct)} of your monthly budget remains",
                icon="AlertCircle",
            )
        )

    return insights


class RecommendationEngine:
    """Runs every recommendation rule against one budget's inputs."""

    def __init__(
        self,
        user_id: int,
        budget: BudgetSnapshot,
        transactions: Sequence[TransactionSnapshot],
        categories: Sequence[CategorySnapshot],
        *,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.user_id = user_id
        self.budget = budget
        self.transactions = list(transactions)
        self.categories = list(categories)
        self.today = today or date.today()
        self.now = now or datetime.now(timezone.utc)
        self._by_id = index_categories(self.categories)

    def _make(
        self,
        rule: str,
        type_: InsightType,
        category: str,
        title: str,
        message: str,
        *,
        priority: int,
        actionable: bool = True,
        key: object = "",
    ) -> Recommendation:
        raw = f"{self.user_id}|{rule}|{key}"
        return Recommendation(
            id=hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16],
            type=type_,
            category=category,
            title=title,
            message=message,
            actionable=actionable,
            priority=priority,
            created_at=self.now,
        )

    def _type_total(self, category_type: CategoryType) -> float:
        return sum(
            coerce_amount(txn.amount)
            for txn in self.transactions
            if effective_type(txn, self._by_id) == category_type
        )

    def _category_transactions(
        self, category: CategorySnapshot
    ) -> list[TransactionSnapshot]:
        out = []
        for txn in self.transactions:
            resolved = resolve_category(txn, self._by_id)
            if resolved is not None and resolved.id == category.id:
                out.append(txn)
        return out

    def budget_health(self) -> list[Recommendation]:
        recs: list[Recommendation] = []
        total_budget = (
            coerce_amount(self.budget.needs_budget)
            + coerce_amount(self.budget.wants_budget)
            + coerce_amount(self.budget.savings_budget)
        )
        if total_budget <= 0:
            return recs

        used_pct = safe_ratio(total_spent(self.transactions), total_budget) * 100
        if used_pct > 90:
            recs.append(
                self._make(
                    "budget-warning",
                    InsightType.warning,
                    "Budget",
                    "Budget Alert",
                    f"You've used {format_pct(used_pct)} of your monthly budget. "
                    "Consider reducing discretionary spending.",
                    priority=10,
                    key=self.budget.id,
                )
            )
        elif used_pct < 70:
            recs.append(
                self._make(
                    "budget-success",
                    InsightType.success,
                    "Budget",
                    "Great Job!",
                    f"You're doing well! Only {format_pct(used_pct)} of your budget "
                    "used. Consider increasing savings this month.",
                    priority=5,
                    key=self.budget.id,
                )
            )

        needs_spent = self._type_total(CategoryType.needs)
        if needs_spent > self.budget.needs_budget:
            recs.append(
                self._make(
                    "needs-overspent",
                    InsightType.warning,
                    "Needs",
                    "Needs Budget Exceeded",
                    "You've exceeded your needs budget by "
                    f"{format_money(needs_spent - self.budget.needs_budget)}. "
                    "Review essential expenses.",
                    priority=9,
                    key=self.budget.id,
                )
            )

        wants_spent = self._type_total(CategoryType.wants)
        if wants_spent > self.budget.wants_budget:
            recs.append(
                self._make(
                    "wants-overspent",
                    InsightType.warning,
                    "Wants",
                    "Wants Budget Exceeded",
                    "You've exceeded your wants budget by "
                    f"{format_money(wants_spent - self.budget.wants_budget)}. "
                    "Consider cutting back on discretionary spending.",
                    priority=8,
                    key=self.budget.id,
                )
            )
        return recs

    def category_spending(self) -> list[Recommendation]:
        recs: list[Recommendation] = []
        for category in self.categories:
            txns = self._category_transactions(category)
            spent = total_spent(txns)
            bucket_type = category_bucket(category)
            limit = coerce_amount(self.budget.bucket(bucket_type))

            if spent > limit * 0.3:
                recs.append(
                    self._make(
                        "category-high",
                        InsightType.info,
                        category.name,
                        f"High {category.name} Spending",
                        f"{category.name} represents a large portion of your "
                        f"{bucket_type.value} budget ({format_money(spent)}). "
                        "Look for ways to optimize.",
                        priority=6,
                        key=category.id,
                    )
                )

            if len(txns) > 20:
                average = safe_ratio(spent, len(txns))
                recs.append(
                    self._make(
                        "category-frequent",
                        InsightType.tip,
                        category.name,
                        f"Frequent {category.name} Purchases",
                        f"You've made {len(txns)} {category.name} transactions "
                        f"(avg {format_money(average)}). Consider bulk buying or "
                        "subscription services.",
                        priority=4,
                        key=category.id,
                    )
                )
        return recs

    def unusual_spending(self) -> list[Recommendation]:
        recs: list[Recommendation] = []
        current_window, previous_window = trailing_windows(
            TREND_WINDOW_DAYS, today=self.today
        )
        recent = in_period(self.transactions, current_window)
        previous = in_period(self.transactions, previous_window)

        change = period_comparison(recent, previous)
        if abs(change) > 30:
            increased = change > 0
            follow_up = (
                "Review recent purchases to identify the cause."
                if increased
                else "Great job reducing expenses!"
            )
            recs.append(
                self._make(
                    "spending-change",
                    InsightType.warning if increased else InsightType.success,
                    "Spending Pattern",
                    "Significant Spending Change",
                    f"Your spending has {'increased' if increased else 'decreased'} "
                    f"by {format_pct(abs(change))} compared to last month. {follow_up}",
                    priority=7,
                    key=current_window.end.isoformat(),
                )
            )

        trends = category_trend_classification(recent, previous, self.categories)
        if trends["increasing"]:
            recs.append(
                self._make(
                    "trend-increasing",
                    InsightType.info,
                    "Trends",
                    "Rising Expenses Detected",
                    f"Spending is increasing in: {', '.join(trends['increasing'])}. "
                    "Monitor these categories closely.",
                    priority=6,
                    key=current_window.end.isoformat(),
                )
            )
        if trends["decreasing"]:
            recs.append(
                self._make(
                    "trend-decreasing",
                    InsightType.success,
                    "Trends",
                    "Expenses Decreasing",
                    "Great work! Spending is down in: "
                    f"{', '.join(trends['decreasing'])}.",
                    priority=3,
                    actionable=False,
                    key=current_window.end.isoformat(),
                )
            )
        return recs

    def savings_opportunities(self) -> list[Recommendation]:
        recs: list[Recommendation] = []
        potential = self.budget.wants_budget - self._type_total(CategoryType.wants)
        if potential > 0:
            recs.append(
                self._make(
                    "savings-opportunity",
                    InsightType.tip,
                    "Savings",
                    "Savings Opportunity",
                    f"You have {format_money(potential)} remaining in your wants "
                    "budget. Consider moving it to savings!",
                    priority=5,
                    key=self.budget.id,
                )
            )

        subscription_categories = [
            category
            for category in self.categories
            if any(word in category.name.lower() for word in SUBSCRIPTION_KEYWORDS)
        ]
        subscription_total = sum(
            total_spent(self._category_transactions(category))
            for category in subscription_categories
        )
        if subscription_total > 100:
            recs.append(
                self._make(
                    "subscription-review",
                    InsightType.tip,
                    "Subscriptions",
                    "Review Subscriptions",
                    f"You're spending {format_money(subscription_total)} on "
                    "subscriptions. Cancel unused services to save money.",
                    priority=7,
                    key=self.budget.id,
                )
            )
        return recs

    def goal_progress(self, goals: Sequence[GoalSnapshot]) -> list[Recommendation]:
        recs: list[Recommendation] = []
        active = [goal for goal in goals if not goal.is_completed]
        if not active:
            recs.append(
                self._make(
                    "no-goals",
                    InsightType.tip,
                    "Goals",
                    "Set Savings Goals",
                    "Create savings goals to stay motivated and track your "
                    "financial progress.",
                    priority=4,
                )
            )
            return recs

        for goal in active:
            target = coerce_amount(goal.target_amount)
            current = coerce_amount(goal.current_amount)
            remaining = target - current
            progress = safe_ratio(current, target) * 100

            if progress > 80:
                recs.append(
                    self._make(
                        "goal-almost",
                        InsightType.success,
                        "Goals",
                        "Goal Almost Reached!",
                        f"You're {format_pct(progress)} towards \"{goal.title}\". "
                        f"Just {format_money(remaining)} to go!",
                        priority=8,
                        actionable=False,
                        key=goal.id,
                    )
                )

            if goal.deadline is None:
                continue
            days_left = (goal.deadline - self.today).days
            if 0 < days_left < 30 and remaining > self.budget.savings_budget:
                needed_per_month = remaining / (days_left / 30)
                recs.append(
                    self._make(
                        "goal-deadline",
                        InsightType.warning,
                        "Goals",
                        "Goal Deadline Approaching",
                        f"\"{goal.title}\" is due in {days_left} days. You need to "
                        f"save {format_money(needed_per_month)}/month to reach it.",
                        priority=9,
                        key=goal.id,
                    )
                )
        return recs

    def run(self, goals: Optional[Sequence[GoalSnapshot]] = None) -> list[Recommendation]:
        recs: list[Recommendation] = []
        recs.extend(self.budget_health())
        recs.extend(self.category_spending())
        recs.extend(self.unusual_spending())
        recs.extend(self.savings_opportunities())
        if goals is not None:
            recs.extend(self.goal_progress(goals))
        return sorted(recs, key=lambda rec: rec.priority, reverse=True)


def generate_recommendations(
    user_id: int,
    budget: BudgetSnapshot,
    transactions: Sequence[TransactionSnapshot],
    categories: Sequence[CategorySnapshot],
    goals: Optional[Sequence[GoalSnapshot]] = None,
    *,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> list[Recommendation]:
    """Build the prioritized recommendation list for one budget.

    `goals=None` means goal data was not loaded and the goal rules are
    skipped; an empty sequence means the user has no goals.
    """
    engine = RecommendationEngine(
        user_id, budget, transactions, categories, today=today, now=now
    )
    return engine.run(goals)
