from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import BillFrequency, CategoryType, RecurringFrequency


class BudgetIn(BaseModel):
    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    total_income_cents: int = Field(..., ge=0)


class BudgetIncomeIn(BaseModel):
    total_income_cents: int = Field(..., ge=0)


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType
    icon: str = Field(default="Circle", max_length=40)
    color: str = Field(default="#6B7280", max_length=9)


class CategoryUpdateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(default="Circle", max_length=40)
    color: str = Field(default="#6B7280", max_length=9)


class TransactionIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    budget_id: int
    category_id: Optional[int] = None
    amount_cents: int = Field(..., gt=0)
    description: str = Field(default="", max_length=200)
    transaction_date: date


class SavingsGoalIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=120)
    target_amount_cents: int = Field(..., gt=0)
    current_amount_cents: int = Field(default=0, ge=0)
    deadline: Optional[date] = None
    category_id: Optional[int] = None


class GoalProgressIn(BaseModel):
    amount_cents: int


class BillReminderIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=120)
    amount_cents: int = Field(..., ge=0)
    due_date: date
    frequency: BillFrequency = BillFrequency.monthly
    category_id: Optional[int] = None
    reminder_days: int = Field(default=3, ge=0, le=60)
    notes: Optional[str] = Field(default=None, max_length=500)


class RecurringTransactionIn(BaseModel):
    category_id: int
    amount_cents: int = Field(..., gt=0)
    description: str = Field(default="", max_length=200)
    frequency: RecurringFrequency
    start_date: date
    end_date: Optional[date] = None
    auto_create: bool = True
    is_active: bool = True

    @field_validator("end_date")
    @classmethod
    def _end_after_start(cls, value: Optional[date], info) -> Optional[date]:
        start = info.data.get("start_date")
        if value is not None and start is not None and value < start:
            raise ValueError("End date must not be before start date")
        return value
