"""
Savings Router
Create, read, update and delete a savings plan, and book monthly contributions
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status

from cashlyzer.core.errors import CashlyzerError
from cashlyzer.core.security import get_current_user_id
from cashlyzer.dependencies import get_savings_service, http_error
from cashlyzer.models.savings import SavingsPlanCreate, SavingsPlanUpdate
from cashlyzer.services.savings_service import SavingsPlanService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_savings_plan(
    request: SavingsPlanCreate,
    user_id: str = Depends(get_current_user_id),
    service: SavingsPlanService = Depends(get_savings_service),
) -> Dict:
    try:
        plan, balance = await service.create(user_id, request)
    except CashlyzerError as e:
        raise http_error(e, "create savings plan")
    return {
        "message": "Savings plan created successfully",
        "savings_id": plan.id,
        "current_balance": balance["net_balance"],
    }


@router.get("/")
async def get_savings_plan(
    user_id: str = Depends(get_current_user_id),
    service: SavingsPlanService = Depends(get_savings_service),
) -> Dict:
    try:
        plan = await service.get(user_id)
    except CashlyzerError as e:
        raise http_error(e, "fetch savings plan")
    return {"message": "Savings plan retrieved successfully", "savings_plan": plan}


@router.put("/{plan_id}")
async def update_savings_plan(
    plan_id: str,
    request: SavingsPlanUpdate,
    user_id: str = Depends(get_current_user_id),
    service: SavingsPlanService = Depends(get_savings_service),
) -> Dict:
    try:
        plan, balance = await service.update(user_id, plan_id, request)
    except CashlyzerError as e:
        raise http_error(e, "update savings plan")
    return {
        "message": "Savings plan updated successfully",
        "savings_id": plan_id,
        "savings_plan": plan.to_dict(),
        "current_balance": balance["net_balance"],
    }


@router.delete("/{plan_id}")
async def delete_savings_plan(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SavingsPlanService = Depends(get_savings_service),
) -> Dict:
    try:
        deleted = await service.delete(user_id, plan_id)
    except CashlyzerError as e:
        raise http_error(e, "delete savings plan")
    if not deleted:
        raise HTTPException(status_code=404, detail="Savings plan not found")
    return {"message": "Savings plan deleted successfully", "savings_id": plan_id}


@router.post("/{plan_id}/contribute")
async def contribute_to_savings(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SavingsPlanService = Depends(get_savings_service),
) -> Dict:
    """
    Books the plan's monthly contribution as an expense and adds it to the plan.
    Refused while the current month's balance cannot cover it.
    """
    try:
        result = await service.contribute(user_id, plan_id)
    except CashlyzerError as e:
        logger.error(f"Savings contribution failed for user {user_id}: {str(e)}")
        raise http_error(e, "contribute to savings")
    return {
        "message": "Contribution successful",
        "savings_id": plan_id,
        "contribution": result["contribution"],
        "new_balance": result["new_balance"],
        "updated_plan": result["plan"].to_dict(),
        "expense": result["expense"].model_dump(mode="json"),
    }
