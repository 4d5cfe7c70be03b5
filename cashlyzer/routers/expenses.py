from datetime import date, datetime, time
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from cashlyzer.core.errors import CashlyzerError
from cashlyzer.core.security import get_current_user_id
from cashlyzer.dependencies import get_analytics_service, http_error
from cashlyzer.models.transaction import ExpenseCreate, TransactionKind
from cashlyzer.services.analytics_service import AnalyticsService
from cashlyzer.utils.dates import BEGINNING_OF_TIME

router = APIRouter()


def date_range(start_date: Optional[date], end_date: Optional[date]):
    """Full-day bounds for a query; an open range covers all history up to now."""
    start = datetime.combine(start_date, time.min) if start_date else BEGINNING_OF_TIME
    end = datetime.combine(end_date, time.max) if end_date else datetime.utcnow()
    if start > end:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    return start, end


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    try:
        transaction, alerts = await service.record_expense(user_id, expense)
    except CashlyzerError as e:
        raise http_error(e, "add expense")

    return {
        "message": "Expense added successfully",
        "expense": transaction.model_dump(mode="json"),
        "alerts": [alert.to_dict() for alert in alerts],
    }


@router.get("/")
async def list_expenses(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    """
    Dates are YYYY-MM-DD. Without a range, every expense up to now is returned.
    """
    start, end = date_range(start_date, end_date)
    try:
        expenses = await service.store.fetch_expenses(user_id, start, end)
    except CashlyzerError as e:
        raise http_error(e, "fetch expenses")

    return {
        "message": "Expenses retrieved successfully",
        "count": len(expenses),
        "expenses": [expense.model_dump(mode="json") for expense in expenses],
    }


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    try:
        deleted = await service.store.delete_transaction(user_id, TransactionKind.EXPENSE, expense_id)
    except CashlyzerError as e:
        raise http_error(e, "delete expense")
    if not deleted:
        raise HTTPException(status_code=404, detail="Expense not found")
    return None
