from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from cashlyzer.analytics.records import CategoryTotals, MonthlyBucket
from cashlyzer.constants.categories import CATEGORY_REGISTRY, CategoryRegistry
from cashlyzer.models.transaction import Transaction
from cashlyzer.utils.dates import month_key, to_naive_utc

logger = logging.getLogger(__name__)


class CategoryAggregator:
    """
    Groups expense transactions into per-category totals and calendar-month
    buckets. Records with a missing or unparseable date, or whose category is
    not in the registry, are skipped without failing the aggregation.
    """

    def __init__(self, registry: Optional[CategoryRegistry] = None) -> None:
        self._registry = registry or CATEGORY_REGISTRY

    @property
    def registry(self) -> CategoryRegistry:
        return self._registry

    def _dated(self, expenses: Iterable[Transaction]) -> List[Tuple[Transaction, datetime]]:
        dated = []
        for expense in expenses:
            occurred = expense.occurred_on
            if occurred is None:
                logger.warning(f"Skipping expense {expense.id}: invalid date {expense.occurred_at!r}")
                continue
            dated.append((expense, to_naive_utc(occurred)))
        return dated

    def category_totals(self, expenses: Iterable[Transaction]) -> CategoryTotals:
        totals: Dict[str, float] = {category_id: 0.0 for category_id in self._registry.ids}
        counts: Dict[str, int] = {category_id: 0 for category_id in self._registry.ids}

        expenses = list(expenses)
        dated = self._dated(expenses)
        skipped = len(expenses) - len(dated)

        for expense, _ in dated:
            if expense.category_id not in totals:
                logger.warning(f"Skipping expense {expense.id}: unknown category {expense.category_id!r}")
                skipped += 1
                continue
            totals[expense.category_id] += expense.amount
            counts[expense.category_id] += 1

        return CategoryTotals(totals=totals, counts=counts, skipped=skipped)

    def monthly_buckets(self, expenses: Iterable[Transaction]) -> List[MonthlyBucket]:
        """Monthly expense buckets in chronological order."""
        buckets: Dict[str, MonthlyBucket] = {}

        for expense, occurred in self._dated(expenses):
            key = month_key(occurred)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = MonthlyBucket(
                    month_key=key,
                    per_category_total={category_id: 0.0 for category_id in self._registry.ids},
                )
                buckets[key] = bucket
            if expense.category_id in bucket.per_category_total:
                bucket.per_category_total[expense.category_id] += expense.amount
                bucket.total_expense += expense.amount

        return [buckets[key] for key in sorted(buckets)]

    def monthly_series(
        self,
        month_keys: List[str],
        expenses: Iterable[Transaction],
        incomes: Iterable[Transaction],
    ) -> List[MonthlyBucket]:
        """
        Income and expense totals for each requested month, in the order given.
        Months with no transactions produce zero-valued buckets. Expenses count
        toward the total even when their category is unknown.
        """
        buckets = {key: MonthlyBucket(month_key=key) for key in month_keys}

        for expense, occurred in self._dated(expenses):
            bucket = buckets.get(month_key(occurred))
            if bucket is None:
                continue
            bucket.total_expense += expense.amount
            if self._registry.is_valid(expense.category_id):
                bucket.per_category_total[expense.category_id] = (
                    bucket.per_category_total.get(expense.category_id, 0.0) + expense.amount
                )

        for income, occurred in self._dated(incomes):
            bucket = buckets.get(month_key(occurred))
            if bucket is not None:
                bucket.total_income += income.amount

        return [buckets[key] for key in month_keys]
