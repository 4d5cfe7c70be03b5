from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, List, Optional

from cashlyzer.analytics.records import AlertEvent, AlertType, Severity
from cashlyzer.constants.categories import CATEGORY_REGISTRY, CategoryRegistry
from cashlyzer.core.config import AnalyticsConfig
from cashlyzer.core.errors import NotificationError
from cashlyzer.models.transaction import Transaction
from cashlyzer.utils.dates import month_bounds, shift_month
from cashlyzer.utils.numbers import round_half_up

if TYPE_CHECKING:
    from cashlyzer.services.interfaces import NotificationSink, TransactionStore

logger = logging.getLogger(__name__)


def _total(transactions: List[Transaction], category_id: Optional[str] = None) -> float:
    return sum(t.amount for t in transactions if category_id is None or t.category_id == category_id)


class AlertEvaluator:
    """
    Threshold checks run after a new expense is recorded: budget utilization,
    category spending spike, and savings rate.

    The checks are independent and best-effort. A failing check is logged and
    skipped; it never prevents the other checks from running or publishing.
    """

    def __init__(
        self,
        store: TransactionStore,
        sink: NotificationSink,
        config: Optional[AnalyticsConfig] = None,
        registry: Optional[CategoryRegistry] = None,
    ) -> None:
        self._store = store
        self._sink = sink
        self._config = config or AnalyticsConfig()
        self._registry = registry or CATEGORY_REGISTRY

    async def evaluate(self, user_id: str, new_expense: Transaction, now: Optional[datetime] = None) -> List[AlertEvent]:
        """Run all checks concurrently. Returns the events that were published."""
        now = now or datetime.utcnow()
        results = await asyncio.gather(
            self._guarded("budget_utilization", user_id, self.check_budget_utilization(user_id, now)),
            self._guarded("category_spike", user_id, self.check_category_spike(user_id, new_expense, now)),
            self._guarded("savings_rate", user_id, self.check_savings_rate(user_id, now)),
        )
        return [event for event in results if event is not None]

    async def _guarded(self, name: str, user_id: str, check: Awaitable[Optional[AlertEvent]]) -> Optional[AlertEvent]:
        try:
            event = await check
            if event is None or not await self._publish(user_id, event):
                return None
            return event
        except Exception as e:
            logger.error(f"Alert check {name} failed for user {user_id}: {str(e)}", exc_info=True)
            return None

    async def _publish(self, user_id: str, event: AlertEvent) -> bool:
        try:
            delivered = await self._sink.publish(user_id, event)
        except NotificationError as e:
            logger.error(f"Failed to publish {event.type.value} for user {user_id}: {str(e)}")
            return False
        if not delivered:
            logger.warning(f"Notification sink rejected {event.type.value} for user {user_id}")
        return bool(delivered)

    async def check_budget_utilization(self, user_id: str, now: datetime) -> Optional[AlertEvent]:
        monthly_budget = await self._store.get_monthly_budget(user_id)
        if not monthly_budget or monthly_budget <= 0:
            return None

        start, end = month_bounds(now.year, now.month)
        expenses = await self._store.fetch_expenses(user_id, start, end)
        utilization = _total(expenses) / monthly_budget

        if utilization < self._config.alert_budget_ratio:
            return None

        severity = Severity.HIGH if utilization >= self._config.alert_budget_high_ratio else Severity.MEDIUM
        return AlertEvent(
            type=AlertType.BUDGET_ALERT,
            message=f"You're {round_half_up(utilization * 100)}% through your budget for the month!",
            severity=severity,
        )

    async def check_category_spike(self, user_id: str, new_expense: Transaction, now: datetime) -> Optional[AlertEvent]:
        category_id = new_expense.category_id
        if not category_id:
            return None

        current_start, current_end = month_bounds(now.year, now.month)
        prior_start, prior_end = month_bounds(*shift_month(now.year, now.month, -1))
        prior_expenses, current_expenses = await asyncio.gather(
            self._store.fetch_expenses(user_id, prior_start, prior_end),
            self._store.fetch_expenses(user_id, current_start, current_end),
        )

        prior_total = _total(prior_expenses, category_id)
        current_total = _total(current_expenses, category_id)
        if prior_total <= 0:
            return None

        increase = (current_total - prior_total) / prior_total
        if increase < self._config.alert_spike_ratio:
            return None

        return AlertEvent(
            type=AlertType.SPENDING_SPIKE,
            message=(
                f"Spending on '{self._registry.display_name(category_id)}' increased by "
                f"{round_half_up(increase * 100)}% this month."
            ),
            severity=Severity.MEDIUM,
        )

    async def check_savings_rate(self, user_id: str, now: datetime) -> Optional[AlertEvent]:
        start, end = month_bounds(now.year, now.month)
        expenses, incomes = await asyncio.gather(
            self._store.fetch_expenses(user_id, start, end),
            self._store.fetch_incomes(user_id, start, end),
        )

        total_income = _total(incomes)
        if total_income <= 0:
            return None

        savings_rate = (total_income - _total(expenses)) / total_income
        if savings_rate >= self._config.alert_savings_rate:
            return None

        return AlertEvent(
            type=AlertType.SAVINGS_ALERT,
            message=(
                f"Your savings rate is {round_half_up(savings_rate * 100)}%, below "
                f"{round_half_up(self._config.alert_savings_rate * 100)}%. "
                "Consider reducing expenses to increase savings."
            ),
            severity=Severity.MEDIUM,
        )
