from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from cashlyzer.constants.categories import CATEGORY_REGISTRY, CategoryRegistry
from cashlyzer.models.transaction import Transaction
from cashlyzer.utils.dates import month_bounds, month_key

SECONDS_PER_DAY = 24 * 60 * 60


def remaining_days(now: datetime) -> int:
    """Days left in the month of `now`, counting the current partial day."""
    _, end = month_bounds(now.year, now.month)
    return max(1, math.ceil((end - now).total_seconds() / SECONDS_PER_DAY))


def category_breakdown(
    expenses: Sequence[Transaction], registry: Optional[CategoryRegistry] = None
) -> List[Dict[str, Any]]:
    """
    Spend per category for a set of expenses, largest first. Categories that
    are no longer in the registry are listed under their raw id.
    """
    registry = registry or CATEGORY_REGISTRY
    total = sum(expense.amount for expense in expenses)

    grouped: Dict[str, Dict[str, Any]] = {}
    for expense in expenses:
        category_id = expense.category_id or "other"
        entry = grouped.setdefault(
            category_id,
            {"category_id": category_id, "name": registry.display_name(category_id), "amount": 0.0, "count": 0},
        )
        entry["amount"] += expense.amount
        entry["count"] += 1

    breakdown = sorted(grouped.values(), key=lambda entry: entry["amount"], reverse=True)
    for entry in breakdown:
        entry["percentage"] = round(entry["amount"] / total * 100, 2) if total > 0 else 0.0
    return breakdown


def dashboard_summary(
    now: datetime,
    monthly_budget: Optional[float],
    month_expenses: Sequence[Transaction],
    month_incomes: Sequence[Transaction],
    running_balance: float,
    registry: Optional[CategoryRegistry] = None,
    top_limit: int = 3,
) -> Dict[str, Any]:
    """
    Current-month position against the budget: what is left to spend, a daily
    allowance for the rest of the month, status messages, and where the money went.
    """
    budget = float(monthly_budget or 0)
    monthly_expenses = sum(expense.amount for expense in month_expenses)
    monthly_income = sum(income.amount for income in month_incomes)
    monthly_balance = monthly_income - monthly_expenses
    utilization = monthly_expenses / budget * 100 if budget > 0 else 0.0

    days_left = remaining_days(now)
    available = max(0.0, budget - monthly_expenses)
    daily_budget = available / days_left

    status = {
        "is_negative": monthly_balance < 0,
        "is_over_budget": utilization > 100,
        "available_to_spend": round(available, 2),
        "remaining_days": days_left,
        "daily_budget": round(daily_budget, 2),
    }

    messages = []
    if status["is_negative"]:
        messages.append({"type": "warning", "message": "You have exceeded your monthly income. Consider reducing expenses."})
    if status["is_over_budget"]:
        messages.append({"type": "warning", "message": "You have exceeded your monthly budget."})
    if available > 0:
        messages.append({"type": "info", "message": f"You have ${available:.2f} remaining in your budget."})
    if daily_budget > 0:
        messages.append(
            {
                "type": "info",
                "message": f"Your daily budget is ${daily_budget:.2f} for the remaining {days_left} days.",
            }
        )

    breakdown = category_breakdown(month_expenses, registry)
    return {
        "month": month_key(now),
        "monthly_income": monthly_income,
        "monthly_expenses": monthly_expenses,
        "monthly_balance": max(0.0, monthly_balance),
        "running_balance": running_balance,
        "monthly_budget": budget,
        "budget_utilization": round(min(100.0, utilization), 2),
        "balance_status": status,
        "messages": messages,
        "top_categories": breakdown[:top_limit],
        "category_breakdown": breakdown,
    }
