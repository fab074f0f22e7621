import csv
import re
from io import StringIO
from typing import Sequence

from models import CategoryType, Transaction
from snapshots import UNCATEGORIZED
from summary import BudgetSummary


def sanitize_csv_value(value: str) -> str:
    """
    Prefix values a spreadsheet would evaluate as formulas or commands with a tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    if value.startswith(("=", "+", "-", "@", "\t", "\r")):
        return "\t" + value

    for pattern in (r"^cmd\s*", r"^powershell\s*", r"^http[s]?://"):
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def format_amount(value: float) -> str:
    return f"{value:.2f}"


def export_transactions(transactions: Sequence[Transaction]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Date", "Description", "Category", "Type", "Amount", "Created At"])
    for txn in transactions:
        category = txn.category
        writer.writerow(
            [
                txn.transaction_date.isoformat(),
                sanitize_csv_value(txn.description or ""),
                sanitize_csv_value(category.name if category else UNCATEGORIZED),
                (category.type if category else CategoryType.needs).value,
                format_amount(txn.amount_cents / 100),
                txn.created_at.isoformat() if txn.created_at else "",
            ]
        )
    return output.getvalue()


def export_budget_summary(summary: BudgetSummary, month: str) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow([f"Budget Summary for {month}"])
    writer.writerow([])
    writer.writerow(["Category", "Budget", "Spent", "Remaining", "Percentage"])
    for category_type in CategoryType:
        bucket = summary.bucket(category_type)
        writer.writerow(
            [
                category_type.value.capitalize(),
                format_amount(bucket.budget),
                format_amount(bucket.spent),
                format_amount(bucket.remaining),
                f"{bucket.percentage}%",
            ]
        )
    total = summary.total
    writer.writerow(
        [
            "Total",
            format_amount(total.budget),
            format_amount(total.spent),
            format_amount(total.remaining),
            "",
        ]
    )
    return output.getvalue()
