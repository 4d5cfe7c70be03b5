"""
Request-scoped orchestration: reads the Transaction Store and runs the analytics engines.

Store failures propagate to the caller (the request fails); alert evaluation
after a new expense is best-effort and never fails the request.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from cashlyzer.analytics import (
    AlertEvaluator,
    AlertEvent,
    BudgetRecommender,
    CategoryAggregator,
    ForecastResult,
    MonthlyBucket,
    RecommendationBundle,
    SavingsForecaster,
)
from cashlyzer.analytics.dashboard import dashboard_summary
from cashlyzer.core.config import AnalyticsConfig
from cashlyzer.models.transaction import ExpenseCreate, IncomeCreate, Transaction
from cashlyzer.services.interfaces import NotificationSink, TransactionStore
from cashlyzer.utils.dates import BEGINNING_OF_TIME, month_bounds, month_key, recent_months

logger = logging.getLogger(__name__)


def _sum(transactions: List[Transaction]) -> float:
    return sum(t.amount for t in transactions)


class AnalyticsService:
    def __init__(
        self,
        store: TransactionStore,
        sink: NotificationSink,
        config: Optional[AnalyticsConfig] = None,
    ) -> None:
        self.store = store
        self.sink = sink
        self.config = config or AnalyticsConfig()
        self.aggregator = CategoryAggregator()
        self.recommender = BudgetRecommender(self.config, aggregator=self.aggregator)
        self.forecaster = SavingsForecaster(self.config)
        self.alerts = AlertEvaluator(store, sink, self.config, self.aggregator.registry)

    async def _transactions(self, user_id: str, start: datetime, end: datetime) -> Tuple[List[Transaction], List[Transaction]]:
        expenses, incomes = await asyncio.gather(
            self.store.fetch_expenses(user_id, start, end),
            self.store.fetch_incomes(user_id, start, end),
        )
        return expenses, incomes

    async def get_recommendations(self, user_id: str, now: Optional[datetime] = None) -> RecommendationBundle:
        now = now or datetime.utcnow()
        monthly_budget = await self.store.get_monthly_budget(user_id)
        expenses, incomes = await self._transactions(user_id, BEGINNING_OF_TIME, now)
        logger.info(f"Generating recommendations for user {user_id} from {len(expenses)} expenses")
        return self.recommender.generate(expenses, incomes, monthly_budget)

    async def monthly_history(self, user_id: str, months: int, now: Optional[datetime] = None) -> List[MonthlyBucket]:
        """Income/expense totals for the last `months` calendar months, oldest first."""
        window = recent_months(months, now)
        start, end = window[0][1], window[-1][2]
        expenses, incomes = await self._transactions(user_id, start, end)
        return self.aggregator.monthly_series([key for key, _, _ in window], expenses, incomes)

    async def get_savings_prediction(
        self, user_id: str, now: Optional[datetime] = None
    ) -> Tuple[ForecastResult, List[MonthlyBucket]]:
        monthly_budget = await self.store.get_monthly_budget(user_id)
        history = await self.monthly_history(user_id, self.config.forecast_history_months, now)

        # months before the first recorded transaction are not part of the series
        while history and history[0].total_income == 0 and history[0].total_expense == 0:
            history.pop(0)

        result = self.forecaster.forecast(history, monthly_budget)
        logger.info(f"Savings prediction for user {user_id} over {len(history)} months: {type(result).__name__}")
        return result, history

    async def get_budget_summary(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        monthly_budget = await self.store.get_monthly_budget(user_id) or 0
        start, end = month_bounds(now.year, now.month)
        expenses, incomes = await self._transactions(user_id, start, end)

        total_expenses = _sum(expenses)
        total_income = _sum(incomes)
        utilization = total_expenses / monthly_budget * 100 if monthly_budget > 0 else 0.0

        return {
            "month": month_key(now),
            "monthly_budget": monthly_budget,
            "total_income": total_income,
            "total_expenses": total_expenses,
            "balance": total_income - total_expenses,
            "budget_utilization": round(utilization, 2),
            "transaction_count": {"expenses": len(expenses), "incomes": len(incomes)},
        }

    async def get_dashboard_summary(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        monthly_budget = await self.store.get_monthly_budget(user_id)
        start, end = month_bounds(now.year, now.month)
        (month_expenses, month_incomes), (all_expenses, all_incomes) = await asyncio.gather(
            self._transactions(user_id, start, end),
            self._transactions(user_id, BEGINNING_OF_TIME, end),
        )
        return dashboard_summary(
            now,
            monthly_budget,
            month_expenses,
            month_incomes,
            running_balance=_sum(all_incomes) - _sum(all_expenses),
            registry=self.aggregator.registry,
            top_limit=self.config.top_categories_limit,
        )

    async def get_budget_history(self, user_id: str, months: int = 6, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        history = await self.monthly_history(user_id, months, now)
        return [
            {
                "month": bucket.month_key,
                "total_income": bucket.total_income,
                "total_expenses": bucket.total_expense,
                "balance": bucket.savings,
            }
            for bucket in reversed(history)
        ]

    async def record_expense(
        self, user_id: str, expense: ExpenseCreate, now: Optional[datetime] = None
    ) -> Tuple[Transaction, List[AlertEvent]]:
        transaction = expense.to_transaction()
        await self.store.put_transaction(user_id, transaction)
        alerts = await self.alerts.evaluate(user_id, transaction, now)
        if alerts:
            logger.info(f"Published {len(alerts)} alert(s) for user {user_id}")
        return transaction, alerts

    async def record_income(self, user_id: str, income: IncomeCreate) -> Transaction:
        transaction = income.to_transaction()
        await self.store.put_transaction(user_id, transaction)
        return transaction
