from datetime import date, datetime, timedelta, timezone

from insights import InsightType, generate_recommendations
from models import CategoryType
from snapshots import BudgetSnapshot, CategorySnapshot, GoalSnapshot, TransactionSnapshot

TODAY = date(2025, 3, 30)
BUDGET = BudgetSnapshot(
    id=7,
    user_id=1,
    month="2025-03",
    total_income=1000.0,
    needs_budget=500.0,
    wants_budget=300.0,
    savings_budget=200.0,
)


def _category(cat_id: int, name: str, category_type: CategoryType) -> CategorySnapshot:
    return CategorySnapshot(id=cat_id, name=name, type=category_type)


def _txn(txn_id, category, amount, day=TODAY) -> TransactionSnapshot:
    return TransactionSnapshot(
        id=txn_id,
        category_id=category.id if category else None,
        amount=amount,
        transaction_date=day,
    )


def _titles(recs):
    return [rec.title for rec in recs]


def test_budget_alert_is_the_only_recommendation_at_95_percent() -> None:
    categories = (
        [_category(i, f"Need {i}", CategoryType.needs) for i in range(1, 5)]
        + [_category(i, f"Want {i}", CategoryType.wants) for i in range(5, 9)]
        + [_category(i, f"Save {i}", CategoryType.savings) for i in range(9, 12)]
    )
    amounts = {CategoryType.needs: 125.0, CategoryType.wants: 75.0, CategoryType.savings: 50.0}
    txns = [_txn(c.id, c, amounts[c.type]) for c in categories]

    recs = generate_recommendations(1, BUDGET, txns, categories, today=TODAY)

    assert len(recs) == 1
    assert recs[0].title == "Budget Alert"
    assert recs[0].priority == 10
    assert recs[0].type == InsightType.warning
    assert "95.0%" in recs[0].message
    assert "Great Job!" not in _titles(recs)


def test_goal_almost_reached() -> None:
    goal = GoalSnapshot(id=3, title="Vacation", target_amount=1000.0, current_amount=850.0)
    recs = generate_recommendations(1, BUDGET, [], [], [goal], today=TODAY)

    almost = [r for r in recs if r.title == "Goal Almost Reached!"]
    assert len(almost) == 1
    assert almost[0].priority == 8
    assert almost[0].actionable is False
    assert almost[0].message == 'You\'re 85.0% towards "Vacation". Just $150.00 to go!'


def test_goal_deadline_requires_monthly_rate() -> None:
    goal = GoalSnapshot(
        id=4,
        title="Laptop",
        target_amount=1000.0,
        current_amount=500.0,
        deadline=TODAY + timedelta(days=15),
    )
    recs = generate_recommendations(1, BUDGET, [], [], [goal], today=TODAY)

    deadline = [r for r in recs if r.title == "Goal Deadline Approaching"]
    assert len(deadline) == 1
    assert deadline[0].priority == 9
    assert "15 days" in deadline[0].message
    assert "$1000.00/month" in deadline[0].message


def test_no_goals_suggests_setting_goals() -> None:
    recs = generate_recommendations(1, BUDGET, [], [], [], today=TODAY)
    assert "Set Savings Goals" in _titles(recs)

    skipped = generate_recommendations(1, BUDGET, [], [], None, today=TODAY)
    assert "Set Savings Goals" not in _titles(skipped)


def test_category_rules_and_subscriptions() -> None:
    groceries = _category(1, "Groceries", CategoryType.needs)
    streaming = _category(2, "Streaming Services", CategoryType.wants)
    txns = [_txn(i, groceries, 1.0) for i in range(1, 22)]
    txns.append(_txn(100, streaming, 120.0))

    recs = generate_recommendations(1, BUDGET, txns, [groceries, streaming], today=TODAY)
    by_title = {rec.title: rec for rec in recs}

    frequent = by_title["Frequent Groceries Purchases"]
    assert frequent.priority == 4
    assert "21 Groceries transactions" in frequent.message
    assert "avg $1.00" in frequent.message
    assert by_title["High Streaming Services Spending"].priority == 6
    assert by_title["Review Subscriptions"].message.startswith(
        "You're spending $120.00 on subscriptions"
    )
    assert "High Groceries Spending" not in by_title


def test_unusual_spending_and_category_trends() -> None:
    dining = _category(1, "Dining Out", CategoryType.wants)
    rent = _category(2, "Rent", CategoryType.needs)
    txns = [
        _txn(1, dining, 150.0, TODAY - timedelta(days=2)),
        _txn(2, rent, 50.0, TODAY - timedelta(days=3)),
        _txn(3, dining, 50.0, TODAY - timedelta(days=40)),
        _txn(4, rent, 50.0, TODAY - timedelta(days=45)),
    ]
    recs = generate_recommendations(1, BUDGET, txns, [dining, rent], today=TODAY)
    by_title = {rec.title: rec for rec in recs}

    change = by_title["Significant Spending Change"]
    assert change.type == InsightType.warning
    assert change.priority == 7
    assert "increased by 100.0%" in change.message
    assert by_title["Rising Expenses Detected"].message.startswith(
        "Spending is increasing in: Dining Out."
    )
    assert "Expenses Decreasing" not in by_title


def test_spending_decrease_is_success() -> None:
    rent = _category(1, "Rent", CategoryType.needs)
    txns = [
        _txn(1, rent, 40.0, TODAY - timedelta(days=1)),
        _txn(2, rent, 100.0, TODAY - timedelta(days=35)),
    ]
    recs = generate_recommendations(1, BUDGET, txns, [rent], today=TODAY)
    by_title = {rec.title: rec for rec in recs}

    assert by_title["Significant Spending Change"].type == InsightType.success
    assert "decreased by 60.0%" in by_title["Significant Spending Change"].message
    assert by_title["Expenses Decreasing"].priority == 3
    assert by_title["Expenses Decreasing"].actionable is False


def test_sorted_by_priority_with_stable_ties() -> None:
    dining = _category(1, "Dining Out", CategoryType.wants)
    txns = [_txn(1, dining, 400.0), _txn(2, None, 600.0)]
    goal = GoalSnapshot(id=1, title="Car", target_amount=100.0, current_amount=90.0)

    recs = generate_recommendations(1, BUDGET, txns, [dining], [goal], today=TODAY)
    priorities = [rec.priority for rec in recs]

    assert priorities == sorted(priorities, reverse=True)
    assert _titles(recs)[:3] == [
        "Budget Alert",
        "Needs Budget Exceeded",
        "Wants Budget Exceeded",
    ]
    assert _titles(recs).index("Wants Budget Exceeded") < _titles(recs).index(
        "Goal Almost Reached!"
    )


def test_ids_are_stable_across_runs() -> None:
    dining = _category(1, "Dining Out", CategoryType.wants)
    txns = [_txn(1, dining, 100.0)]
    first = generate_recommendations(
        1, BUDGET, txns, [dining], [], today=TODAY, now=datetime(2025, 3, 30, tzinfo=timezone.utc)
    )
    second = generate_recommendations(
        1, BUDGET, txns, [dining], [], today=TODAY, now=datetime(2025, 3, 31, tzinfo=timezone.utc)
    )

    assert [r.id for r in first] == [r.id for r in second]
    assert len({r.id for r in first}) == len(first)
    other_user = generate_recommendations(2, BUDGET, txns, [dining], [], today=TODAY)
    assert {r.id for r in other_user}.isdisjoint({r.id for r in first})


def test_zero_budget_skips_budget_health() -> None:
    empty = BudgetSnapshot(1, 1, "2025-03", 0.0, 0.0, 0.0, 0.0)
    recs = generate_recommendations(1, empty, [_txn(1, None, 10.0)], [], today=TODAY)
    assert "Budget Alert" not in _titles(recs)
    assert "Great Job!" not in _titles(recs)


def test_low_usage_praises_and_suggests_moving_wants() -> None:
    rent = _category(1, "Rent", CategoryType.needs)
    dining = _category(2, "Dining Out", CategoryType.wants)
    txns = [_txn(1, rent, 300.0), _txn(2, dining, 100.0)]

    recs = generate_recommendations(1, BUDGET, txns, [rent, dining], today=TODAY)
    by_title = {rec.title: rec for rec in recs}

    great = by_title["Great Job!"]
    assert great.type == InsightType.success
    assert great.priority == 5
    assert "Only 40.0% of your budget used" in great.message

    opportunity = by_title["Savings Opportunity"]
    assert opportunity.type == InsightType.tip
    assert opportunity.priority == 5
    assert opportunity.message == (
        "You have $200.00 remaining in your wants budget. Consider moving it to savings!"
    )


def test_no_savings_opportunity_when_wants_overspent() -> None:
    rent = _category(1, "Rent", CategoryType.needs)
    dining = _category(2, "Dining Out", CategoryType.wants)
    txns = [_txn(1, rent, 100.0), _txn(2, dining, 350.0)]

    recs = generate_recommendations(1, BUDGET, txns, [rent, dining], today=TODAY)

    assert "Savings Opportunity" not in _titles(recs)
    assert "Wants Budget Exceeded" in _titles(recs)


def test_unknown_category_type_counts_as_needs() -> None:
    odd = CategorySnapshot(id=1, name="Odd", type="bogus")
    recs = generate_recommendations(1, BUDGET, [_txn(1, odd, 200.0)], [odd], today=TODAY)
    by_title = {rec.title: rec for rec in recs}

    assert "your needs budget ($200.00)" in by_title["High Odd Spending"].message
