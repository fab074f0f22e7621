import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from analytics import (
    spending_by_category,
    spending_by_type,
    spending_overview,
    top_categories,
    trend,
)
from config import get_settings
from database import SessionLocal, init_db, session_scope
from models import (
    BillReminder,
    Budget,
    Category,
    CategoryType,
    RecurringTransaction,
    SavingsGoal,
    Transaction,
)
from periods import local_today, resolve_period
from scheduler import SchedulerManager
from schemas import (
    BillReminderIn,
    BudgetIn,
    BudgetIncomeIn,
    CategoryIn,
    CategoryUpdateIn,
    GoalProgressIn,
    RecurringTransactionIn,
    SavingsGoalIn,
    TransactionIn,
)
from services import (
    BillService,
    BudgetService,
    CategoryService,
    GoalService,
    InsightsService,
    RecurringTransactionService,
    TransactionService,
)

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="50/30/20 Budget")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    init_db()
    logger.info("Database ready at %s", settings.database_url)
    with session_scope() as session:
        CategoryService(session).seed_defaults()
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


def http_error(exc: ValueError) -> HTTPException:
    message = str(exc)
    status = 404 if message.lower().endswith("not found") else 400
    return HTTPException(status_code=status, detail=message)


def csv_response(csv_text: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def category_out(category: Optional[Category]) -> Optional[dict]:
    if category is None:
        return None
    return {
        "id": category.id,
        "name": category.name,
        "type": category.type.value,
        "icon": category.icon,
        "color": category.color,
        "is_default": category.is_default,
    }


def budget_out(budget: Budget) -> dict:
    return {
        "id": budget.id,
        "month": budget.month,
        "total_income_cents": budget.total_income_cents,
        "needs_budget_cents": budget.needs_budget_cents,
        "wants_budget_cents": budget.wants_budget_cents,
        "savings_budget_cents": budget.savings_budget_cents,
    }


def transaction_out(txn: Transaction) -> dict:
    return {
        "id": txn.id,
        "budget_id": txn.budget_id,
        "category": category_out(txn.category),
        "amount_cents": txn.amount_cents,
        "description": txn.description,
        "transaction_date": txn.transaction_date.isoformat(),
        "recurring_id": txn.origin_recurring_id,
    }


def goal_out(goal: SavingsGoal) -> dict:
    return {
        "id": goal.id,
        "title": goal.title,
        "target_amount_cents": goal.target_amount_cents,
        "current_amount_cents": goal.current_amount_cents,
        "deadline": goal.deadline.isoformat() if goal.deadline else None,
        "category_id": goal.category_id,
        "is_completed": goal.is_completed,
    }


def bill_out(bill: BillReminder) -> dict:
    return {
        "id": bill.id,
        "title": bill.title,
        "amount_cents": bill.amount_cents,
        "due_date": bill.due_date.isoformat(),
        "frequency": bill.frequency.value,
        "category_id": bill.category_id,
        "reminder_days": bill.reminder_days,
        "notes": bill.notes,
        "is_paid": bill.is_paid,
    }


def recurring_out(recurring: RecurringTransaction) -> dict:
    return {
        "id": recurring.id,
        "category_id": recurring.category_id,
        "amount_cents": recurring.amount_cents,
        "description": recurring.description,
        "frequency": recurring.frequency.value,
        "start_date": recurring.start_date.isoformat(),
        "end_date": recurring.end_date.isoformat() if recurring.end_date else None,
        "next_occurrence": recurring.next_occurrence.isoformat(),
        "auto_create": recurring.auto_create,
        "is_active": recurring.is_active,
    }


# Budgets


@app.get("/api/budgets")
def list_budgets(db: Session = Depends(get_db)):
    return [budget_out(b) for b in BudgetService(db).list_all()]


@app.post("/api/budgets", status_code=201)
def create_budget(data: BudgetIn, db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db).create(data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return budget_out(budget)


@app.get("/api/budgets/by-month/{month}")
def get_budget_by_month(month: str, db: Session = Depends(get_db)):
    budget = BudgetService(db).get_by_month(month)
    if budget is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    return budget_out(budget)


@app.get("/api/budgets/{budget_id}")
def get_budget(budget_id: int, db: Session = Depends(get_db)):
    try:
        return budget_out(BudgetService(db).get(budget_id))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/budgets/{budget_id}")
def update_budget(budget_id: int, data: BudgetIncomeIn, db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db).update(budget_id, data.total_income_cents)
    except ValueError as exc:
        raise http_error(exc) from exc
    return budget_out(budget)


@app.delete("/api/budgets/{budget_id}", status_code=204)
def delete_budget(budget_id: int, db: Session = Depends(get_db)):
    try:
        BudgetService(db).delete(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/budgets/{budget_id}/summary")
def budget_summary(budget_id: int, db: Session = Depends(get_db)):
    try:
        return BudgetService(db).summary(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/budgets/{budget_id}/insights")
def budget_insights(budget_id: int, db: Session = Depends(get_db)):
    try:
        return InsightsService(db).insights(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/budgets/{budget_id}/recommendations")
def budget_recommendations(budget_id: int, db: Session = Depends(get_db)):
    try:
        return InsightsService(db).recommendations(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/budgets/{budget_id}/overview")
def budget_overview(budget_id: int, db: Session = Depends(get_db)):
    try:
        return InsightsService(db).spending_overview(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/budgets/{budget_id}/dashboard")
def budget_dashboard(budget_id: int, db: Session = Depends(get_db)):
    try:
        return InsightsService(db).dashboard(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/budgets/{budget_id}/transactions")
def budget_transactions(budget_id: int, db: Session = Depends(get_db)):
    try:
        BudgetService(db).get(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return [transaction_out(t) for t in TransactionService(db).list_by_budget(budget_id)]


@app.get("/api/budgets/{budget_id}/transactions.csv")
def export_budget_transactions(budget_id: int, db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db).get(budget_id)
        csv_text = TransactionService(db).export_csv(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return csv_response(csv_text, f"budget-{budget.month}.csv")


@app.get("/api/budgets/{budget_id}/summary.csv")
def export_budget_summary(budget_id: int, db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db).get(budget_id)
        csv_text = BudgetService(db).export_summary_csv(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return csv_response(csv_text, f"budget-summary-{budget.month}.csv")


@app.get("/api/analytics")
def analytics(request: Request, db: Session = Depends(get_db)):
    today = local_today()
    try:
        period = resolve_period(
            request.query_params.get("period"),
            request.query_params.get("start"),
            request.query_params.get("end"),
            today=today,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    transactions = TransactionService(db).snapshots(period=period)
    categories = CategoryService(db).snapshots()
    return {
        "period": {"slug": period.slug, "start": period.start, "end": period.end},
        "by_category": spending_by_category(transactions, categories),
        "by_type": spending_by_type(transactions, categories),
        "top_categories": top_categories(transactions, categories=categories),
        "trend": trend(transactions, today=today),
        "overview": spending_overview(transactions, categories, today=today),
    }


# Transactions


@app.post("/api/transactions", status_code=201)
def create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    service = TransactionService(db)
    try:
        txn = service.create(data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return transaction_out(service.get(txn.id))


@app.get("/api/transactions/recent")
def recent_transactions(limit: int = 10, db: Session = Depends(get_db)):
    limit = min(max(limit, 1), 100)
    return [transaction_out(t) for t in TransactionService(db).recent(limit)]


@app.get("/api/transactions/{transaction_id}")
def get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        return transaction_out(TransactionService(db).get(transaction_id))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/transactions/{transaction_id}")
def update_transaction(
    transaction_id: int, data: TransactionIn, db: Session = Depends(get_db)
):
    try:
        txn = TransactionService(db).update(transaction_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return transaction_out(txn)


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        TransactionService(db).delete(transaction_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


# Categories


@app.get("/api/categories")
def list_categories(
    category_type: Optional[CategoryType] = Query(None, alias="type"),
    defaults_only: bool = False,
    db: Session = Depends(get_db),
):
    service = CategoryService(db)
    if category_type is not None:
        categories = service.list_by_type(category_type)
    else:
        categories = service.list_all(defaults_only=defaults_only)
    return [category_out(c) for c in categories]


@app.post("/api/categories/seed")
def seed_categories(db: Session = Depends(get_db)):
    return {"created": CategoryService(db).seed_defaults()}


@app.post("/api/categories", status_code=201)
def create_category(data: CategoryIn, db: Session = Depends(get_db)):
    try:
        return category_out(CategoryService(db).create(data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/categories/{category_id}")
def update_category(
    category_id: int, data: CategoryUpdateIn, db: Session = Depends(get_db)
):
    try:
        return category_out(CategoryService(db).update(category_id, data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/categories/{category_id}", status_code=204)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    try:
        CategoryService(db).delete(category_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


# Savings goals


@app.get("/api/goals")
def list_goals(active: bool = False, db: Session = Depends(get_db)):
    service = GoalService(db)
    goals = service.list_active() if active else service.list_all()
    return [goal_out(g) for g in goals]


@app.post("/api/goals", status_code=201)
def create_goal(data: SavingsGoalIn, db: Session = Depends(get_db)):
    try:
        return goal_out(GoalService(db).create(data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/goals/{goal_id}")
def update_goal(goal_id: int, data: SavingsGoalIn, db: Session = Depends(get_db)):
    try:
        return goal_out(GoalService(db).update(goal_id, data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/goals/{goal_id}/progress")
def goal_progress(goal_id: int, data: GoalProgressIn, db: Session = Depends(get_db)):
    try:
        return goal_out(GoalService(db).update_progress(goal_id, data.amount_cents))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/goals/{goal_id}/toggle")
def toggle_goal(goal_id: int, is_completed: bool, db: Session = Depends(get_db)):
    try:
        return goal_out(GoalService(db).toggle_complete(goal_id, is_completed))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/goals/{goal_id}", status_code=204)
def delete_goal(goal_id: int, db: Session = Depends(get_db)):
    try:
        GoalService(db).delete(goal_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


# Bill reminders


@app.get("/api/bills")
def list_bills(db: Session = Depends(get_db)):
    return [bill_out(b) for b in BillService(db).list_all()]


@app.get("/api/bills/upcoming")
def upcoming_bills(days: int = 7, db: Session = Depends(get_db)):
    if days < 0:
        raise HTTPException(status_code=400, detail="days must not be negative")
    return [bill_out(b) for b in BillService(db).upcoming(days, today=local_today())]


@app.post("/api/bills", status_code=201)
def create_bill(data: BillReminderIn, db: Session = Depends(get_db)):
    try:
        return bill_out(BillService(db).create(data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/bills/{bill_id}")
def update_bill(bill_id: int, data: BillReminderIn, db: Session = Depends(get_db)):
    try:
        return bill_out(BillService(db).update(bill_id, data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/bills/{bill_id}/paid")
def mark_bill_paid(bill_id: int, is_paid: bool = True, db: Session = Depends(get_db)):
    try:
        return bill_out(BillService(db).mark_paid(bill_id, is_paid))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/bills/{bill_id}", status_code=204)
def delete_bill(bill_id: int, db: Session = Depends(get_db)):
    try:
        BillService(db).delete(bill_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


# Recurring transactions


@app.get("/api/recurring")
def list_recurring(active: bool = False, db: Session = Depends(get_db)):
    service = RecurringTransactionService(db)
    items = service.list_active() if active else service.list_all()
    return [recurring_out(r) for r in items]


@app.post("/api/recurring", status_code=201)
def create_recurring(data: RecurringTransactionIn, db: Session = Depends(get_db)):
    try:
        return recurring_out(RecurringTransactionService(db).create(data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/recurring/run")
def run_recurring():
    return {"posted": scheduler_manager.run_job("api")}


@app.put("/api/recurring/{recurring_id}")
def update_recurring(
    recurring_id: int, data: RecurringTransactionIn, db: Session = Depends(get_db)
):
    try:
        return recurring_out(RecurringTransactionService(db).update(recurring_id, data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/recurring/{recurring_id}/toggle")
def toggle_recurring(
    recurring_id: int, is_active: bool, db: Session = Depends(get_db)
):
    try:
        return recurring_out(
            RecurringTransactionService(db).toggle_active(recurring_id, is_active)
        )
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/recurring/{recurring_id}", status_code=204)
def delete_recurring(recurring_id: int, db: Session = Depends(get_db)):
    try:
        RecurringTransactionService(db).delete(recurring_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
