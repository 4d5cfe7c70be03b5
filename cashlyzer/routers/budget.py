"""
Budget Router
Monthly budget, current-month summary, history, and category recommendations
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends, Query

from cashlyzer.core.errors import CashlyzerError
from cashlyzer.core.security import get_current_user_id
from cashlyzer.dependencies import get_analytics_service, http_error
from cashlyzer.models.transaction import MonthlyBudgetUpdate
from cashlyzer.services.analytics_service import AnalyticsService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/")
async def set_monthly_budget(
    update: MonthlyBudgetUpdate,
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    try:
        await service.store.set_monthly_budget(user_id, update.monthly_budget)
    except CashlyzerError as e:
        raise http_error(e, "update budget")
    return {"message": "Monthly budget updated successfully", "monthly_budget": update.monthly_budget}


@router.get("/summary")
async def get_budget_summary(
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    """
    Income, expenses, balance and budget utilization for the current month.
    """
    try:
        return await service.get_budget_summary(user_id)
    except CashlyzerError as e:
        raise http_error(e, "fetch budget summary")


@router.get("/history")
async def get_budget_history(
    months: int = Query(6, ge=1, le=24),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    try:
        history = await service.get_budget_history(user_id, months)
    except CashlyzerError as e:
        raise http_error(e, "fetch budget history")
    return {"message": "Budget history retrieved successfully", "history": history}


@router.get("/recommendations")
async def get_recommendations(
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    """
    Per-category recommended budgets with spending insights.
    Users without expenses get onboarding guidance instead of an error.
    """
    try:
        bundle = await service.get_recommendations(user_id)
    except CashlyzerError as e:
        logger.error(f"Recommendation generation failed for user {user_id}: {str(e)}")
        raise http_error(e, "generate recommendations")
    return bundle.to_dict()


@router.get("/dashboard")
async def get_dashboard(
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    """
    Current-month balances, budget status, daily allowance and category breakdown.
    """
    try:
        summary = await service.get_dashboard_summary(user_id)
    except CashlyzerError as e:
        raise http_error(e, "fetch dashboard summary")
    return {"message": "Dashboard summary retrieved successfully", "summary": summary}
