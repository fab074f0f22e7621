"""initial budget schema

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None

CATEGORY_TYPE = sa.Enum("needs", "wants", "savings", name="categorytype")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer()),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", CATEGORY_TYPE, nullable=False),
        sa.Column("icon", sa.String(length=40), nullable=False, server_default="Circle"),
        sa.Column("color", sa.String(length=9), nullable=False, server_default="#6B7280"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "type", "name", name="uq_category_user_type_name"),
    )
    op.create_index("ix_categories_default", "categories", ["is_default"])

    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("total_income_cents", sa.Integer(), nullable=False),
        sa.Column("needs_budget_cents", sa.Integer(), nullable=False),
        sa.Column("wants_budget_cents", sa.Integer(), nullable=False),
        sa.Column("savings_budget_cents", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "month", name="uq_budget_user_month"),
        sa.CheckConstraint("total_income_cents >= 0", name="ck_budget_income_positive"),
    )

    op.create_table(
        "recurring_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "frequency",
            sa.Enum(
                "daily",
                "weekly",
                "biweekly",
                "monthly",
                "quarterly",
                "yearly",
                name="recurringfrequency",
            ),
            nullable=False,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date()),
        sa.Column("next_occurrence", sa.Date(), nullable=False),
        sa.Column("auto_create", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_recurring_amount_positive"),
    )
    op.create_index(
        "ix_recurring_user_next", "recurring_transactions", ["user_id", "next_occurrence"]
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "budget_id", sa.Integer(), sa.ForeignKey("budgets.id"), nullable=False
        ),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column(
            "origin_recurring_id",
            sa.Integer(),
            sa.ForeignKey("recurring_transactions.id"),
        ),
        sa.Column("occurrence_date", sa.Date()),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id",
            "origin_recurring_id",
            "occurrence_date",
            name="uq_txn_origin_occurrence",
        ),
        sa.CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
    )
    op.create_index(
        "ix_transactions_user_date", "transactions", ["user_id", "transaction_date"]
    )
    op.create_index("ix_transactions_budget", "transactions", ["budget_id"])

    op.create_table(
        "savings_goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("target_amount_cents", sa.Integer(), nullable=False),
        sa.Column(
            "current_amount_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("deadline", sa.Date()),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint("target_amount_cents > 0", name="ck_goal_target_positive"),
    )
    op.create_index(
        "ix_goals_user_completed", "savings_goals", ["user_id", "is_completed"]
    )

    op.create_table(
        "bill_reminders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column(
            "frequency",
            sa.Enum(
                "once", "weekly", "monthly", "quarterly", "yearly", name="billfrequency"
            ),
            nullable=False,
            server_default="monthly",
        ),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("reminder_days", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("notes", sa.Text()),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_bill_amount_positive"),
    )
    op.create_index("ix_bills_user_due", "bill_reminders", ["user_id", "due_date"])


def downgrade():
    op.drop_index("ix_bills_user_due", table_name="bill_reminders")
    op.drop_table("bill_reminders")
    op.drop_index("ix_goals_user_completed", table_name="savings_goals")
    op.drop_table("savings_goals")
    op.drop_index("ix_transactions_budget", table_name="transactions")
    op.drop_index("ix_transactions_user_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_recurring_user_next", table_name="recurring_transactions")
    op.drop_table("recurring_transactions")
    op.drop_table("budgets")
    op.drop_index("ix_categories_default", table_name="categories")
    op.drop_table("categories")
