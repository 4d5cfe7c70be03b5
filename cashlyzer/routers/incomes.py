from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from cashlyzer.core.errors import CashlyzerError
from cashlyzer.core.security import get_current_user_id
from cashlyzer.dependencies import get_analytics_service, http_error
from cashlyzer.models.transaction import IncomeCreate, TransactionKind
from cashlyzer.routers.expenses import date_range
from cashlyzer.services.analytics_service import AnalyticsService

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_income(
    income: IncomeCreate,
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    try:
        transaction = await service.record_income(user_id, income)
    except CashlyzerError as e:
        raise http_error(e, "add income")
    return {"message": "Income added successfully", "income": transaction.model_dump(mode="json")}


@router.get("/")
async def list_incomes(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    start, end = date_range(start_date, end_date)
    try:
        incomes = await service.store.fetch_incomes(user_id, start, end)
    except CashlyzerError as e:
        raise http_error(e, "fetch incomes")

    return {
        "message": "Incomes retrieved successfully",
        "count": len(incomes),
        "incomes": [income.model_dump(mode="json") for income in incomes],
    }


@router.delete("/{income_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_income(
    income_id: str,
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    try:
        deleted = await service.store.delete_transaction(user_id, TransactionKind.INCOME, income_id)
    except CashlyzerError as e:
        raise http_error(e, "delete income")
    if not deleted:
        raise HTTPException(status_code=404, detail="Income not found")
    return None
