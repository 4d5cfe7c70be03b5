"""
Savings plans: creation and updates are gated on the current month's balance,
and each contribution is booked as a "financial / Savings" expense.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from cashlyzer.core.errors import ErrorKind, SavingsPlanError
from cashlyzer.models.savings import SavingsPlan, SavingsPlanCreate, SavingsPlanUpdate
from cashlyzer.models.transaction import ExpenseCreate
from cashlyzer.services.interfaces import SavingsPlanStore, TransactionStore
from cashlyzer.utils.dates import month_bounds

logger = logging.getLogger(__name__)

SAVINGS_CATEGORY = "financial"
SAVINGS_SUBCATEGORY = "Savings"


class SavingsPlanService:
    def __init__(self, store: TransactionStore, plans: SavingsPlanStore) -> None:
        self.store = store
        self.plans = plans

    async def current_balance(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Income, expenses and net balance for the month containing `now`."""
        now = now or datetime.utcnow()
        start, end = month_bounds(now.year, now.month)
        expenses, incomes = await asyncio.gather(
            self.store.fetch_expenses(user_id, start, end),
            self.store.fetch_incomes(user_id, start, end),
        )
        total_expenses = sum(t.amount for t in expenses)
        total_income = sum(t.amount for t in incomes)
        net_balance = total_income - total_expenses
        return {
            "total_income": total_income,
            "total_expenses": total_expenses,
            "net_balance": net_balance,
            "is_negative": net_balance < 0,
        }

    @staticmethod
    def _check_contribution(balance: Dict[str, Any], monthly_contribution: Optional[float], action: str) -> None:
        if balance["is_negative"]:
            raise SavingsPlanError(
                f"Cannot {action} savings plan while having negative balance. Please clear your negative balance first.",
                kind=ErrorKind.INVALID_INPUT,
            )
        if monthly_contribution is not None and monthly_contribution > balance["total_income"]:
            raise SavingsPlanError("Monthly contribution cannot exceed your monthly income", kind=ErrorKind.INVALID_INPUT)

    async def create(
        self, user_id: str, request: SavingsPlanCreate, now: Optional[datetime] = None
    ) -> Tuple[SavingsPlan, Dict[str, Any]]:
        balance = await self.current_balance(user_id, now)
        self._check_contribution(balance, request.monthly_contribution, "create")

        plan = SavingsPlan(
            **request.model_dump(),
            monthly_balance=balance["net_balance"],
            start_date=now or datetime.utcnow(),
        )
        await self.plans.put_plan(user_id, plan)
        logger.info(f"Created savings plan {plan.id} for user {user_id}")
        return plan, balance

    async def get(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        plan = await self.plans.latest_plan(user_id)
        if plan is None:
            raise SavingsPlanError("No savings plan exists for this user", kind=ErrorKind.NOT_FOUND)

        balance = await self.current_balance(user_id, now)
        return {
            **plan.to_dict(),
            "current_balance": balance["net_balance"],
            "can_contribute": not balance["is_negative"] and balance["net_balance"] >= plan.monthly_contribution,
        }

    async def update(
        self, user_id: str, plan_id: str, request: SavingsPlanUpdate, now: Optional[datetime] = None
    ) -> Tuple[SavingsPlan, Dict[str, Any]]:
        balance = await self.current_balance(user_id, now)
        self._check_contribution(balance, request.monthly_contribution, "update")

        updates = request.model_dump(exclude_unset=True)
        updates["monthly_balance"] = balance["net_balance"]
        plan = await self.plans.update_plan(user_id, plan_id, updates)
        return plan, balance

    async def delete(self, user_id: str, plan_id: str) -> bool:
        return await self.plans.delete_plan(user_id, plan_id)

    async def contribute(self, user_id: str, plan_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        plan = await self.plans.get_plan(user_id, plan_id)
        if plan is None:
            raise SavingsPlanError(f"Savings plan {plan_id} not found", kind=ErrorKind.NOT_FOUND)

        balance = await self.current_balance(user_id, now)
        if balance["is_negative"]:
            raise SavingsPlanError("Cannot contribute while having negative balance", kind=ErrorKind.INVALID_INPUT)
        if balance["net_balance"] < plan.monthly_contribution:
            raise SavingsPlanError(
                "Your current balance is insufficient for the monthly contribution", kind=ErrorKind.INVALID_INPUT
            )

        expense = ExpenseCreate(
            category_id=SAVINGS_CATEGORY,
            subcategory=SAVINGS_SUBCATEGORY,
            amount=plan.monthly_contribution,
            note=f"Monthly contribution to savings plan: {plan.target_amount}",
            occurred_at=now.isoformat(),
        ).to_transaction()
        await self.store.put_transaction(user_id, expense)

        new_balance = balance["net_balance"] - plan.monthly_contribution
        updated = await self.plans.update_plan(
            user_id,
            plan_id,
            {
                "current_amount": plan.current_amount + plan.monthly_contribution,
                "last_contribution_date": now,
                "total_contributions": plan.total_contributions + 1,
                "monthly_balance": new_balance,
            },
        )
        logger.info(f"User {user_id} contributed {plan.monthly_contribution} to savings plan {plan_id}")
        return {
            "contribution": plan.monthly_contribution,
            "new_balance": new_balance,
            "plan": updated,
            "expense": expense,
        }
