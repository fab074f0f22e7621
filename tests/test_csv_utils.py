import csv
from datetime import date, datetime
from io import StringIO

from csv_utils import export_budget_summary, export_transactions, sanitize_csv_value
from models import Category, CategoryType, Transaction
from snapshots import BudgetSnapshot
from summary import compute_summary


def test_sanitize_csv_value_blocks_formulas():
    assert sanitize_csv_value("=SUM(A1:A3)") == "\t=SUM(A1:A3)"
    assert sanitize_csv_value("@cmd") == "\t@cmd"
    assert sanitize_csv_value("https://example.com") == "\thttps://example.com"
    assert sanitize_csv_value("  Coffee  ") == "Coffee"
    assert sanitize_csv_value("") == ""


def test_export_transactions_layout():
    rent = Category(id=1, name="Rent", type=CategoryType.wants)
    txns = [
        Transaction(
            id=1,
            budget_id=1,
            amount_cents=123_456,
            description="March, rent",
            transaction_date=date(2025, 3, 1),
            category=rent,
            created_at=datetime(2025, 3, 1, 9, 30),
        ),
        Transaction(
            id=2,
            budget_id=1,
            amount_cents=500,
            description="=HYPERLINK()",
            transaction_date=date(2025, 3, 2),
            created_at=datetime(2025, 3, 2, 8, 0),
        ),
    ]
    rows = list(csv.reader(StringIO(export_transactions(txns))))

    assert rows[0] == ["Date", "Description", "Category", "Type", "Amount", "Created At"]
    assert rows[1] == [
        "2025-03-01",
        "March, rent",
        "Rent",
        "wants",
        "1234.56",
        "2025-03-01T09:30:00",
    ]
    assert rows[2][1] == "\t=HYPERLINK()"
    assert rows[2][2:5] == ["Uncategorized", "needs", "5.00"]


def test_export_budget_summary_layout():
    budget = BudgetSnapshot(1, 1, "2025-03", 1000.0, 500.0, 300.0, 200.0)
    summary = compute_summary(budget, [])

    lines = export_budget_summary(summary, "2025-03").splitlines()

    assert lines[0] == "Budget Summary for 2025-03"
    assert lines[1] == ""
    assert lines[2] == "Category,Budget,Spent,Remaining,Percentage"
    assert lines[3] == "Needs,500.00,0.00,500.00,50%"
    assert lines[4] == "Wants,300.00,0.00,300.00,30%"
    assert lines[5] == "Savings,200.00,0.00,200.00,20%"
    assert lines[6] == "Total,1000.00,0.00,1000.00,"
