from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from cashlyzer.analytics.aggregator import CategoryAggregator
from cashlyzer.analytics.insights import InsightGenerator, onboarding_insights
from cashlyzer.analytics.records import (
    CategorySnapshot,
    CategoryTotals,
    RecommendationBundle,
    RecommendationResult,
)
from cashlyzer.analytics.trends import TrendAnalyzer
from cashlyzer.core.config import AnalyticsConfig
from cashlyzer.models.transaction import Transaction
from cashlyzer.utils.dates import month_key, to_naive_utc
from cashlyzer.utils.numbers import round_half_up

logger = logging.getLogger(__name__)


def average_monthly_income(incomes: Sequence[Transaction]) -> float:
    """Mean of the monthly income totals over the months that have any income."""
    per_month: Dict[str, float] = defaultdict(float)
    for income in incomes:
        occurred = income.occurred_on
        if occurred is None:
            logger.warning(f"Skipping income {income.id}: invalid date {income.occurred_at!r}")
            continue
        per_month[month_key(to_naive_utc(occurred))] += income.amount

    if not per_month:
        return 0.0
    return sum(per_month.values()) / len(per_month)


class BudgetRecommender:
    """
    Per-category budget recommendations from income, share of spend and trend,
    capped by the user's declared monthly budget.
    """

    def __init__(
        self,
        config: Optional[AnalyticsConfig] = None,
        aggregator: Optional[CategoryAggregator] = None,
        trend_analyzer: Optional[TrendAnalyzer] = None,
        insight_generator: Optional[InsightGenerator] = None,
    ) -> None:
        self._config = config or AnalyticsConfig()
        self._aggregator = aggregator or CategoryAggregator()
        self._trends = trend_analyzer or TrendAnalyzer()
        self._insights = insight_generator or InsightGenerator(self._config, self._aggregator.registry)

    def snapshots(self, expenses: Sequence[Transaction]) -> List[CategorySnapshot]:
        return self._snapshots_from(self._aggregator.category_totals(expenses), expenses)

    def recommend_category(
        self,
        snapshot: CategorySnapshot,
        monthly_income: float,
        monthly_budget: float,
    ) -> RecommendationResult:
        share = snapshot.share_percent
        trend = snapshot.trend_percent

        base = monthly_income * share / 100
        if trend > self._config.trend_adjust_percent:
            # spending growing fast, pull back
            base *= self._config.growth_factor
        elif trend < -self._config.trend_adjust_percent:
            base *= self._config.shrink_factor

        cap = max(monthly_budget, 0.0) * share / 100
        recommended = max(min(base, cap), 0.0)
        rounded = round_half_up(recommended)
        if rounded > cap:
            rounded = math.floor(cap)

        return RecommendationResult(
            category_id=snapshot.category_id,
            recommended=rounded,
            current=round_half_up(snapshot.average_amount),
            trend_percent=round_half_up(trend),
            share_percent=round_half_up(share),
        )

    def generate(
        self,
        expenses: Sequence[Transaction],
        incomes: Sequence[Transaction],
        monthly_budget: Optional[float],
    ) -> RecommendationBundle:
        budget = float(monthly_budget or 0)
        totals = self._aggregator.category_totals(expenses)

        if not expenses or not any(totals.counts.values()):
            return self._insufficient_history(budget)

        monthly_income = average_monthly_income(incomes)
        snapshots = self._snapshots_from(totals, expenses)
        recommendations = [self.recommend_category(snapshot, monthly_income, budget) for snapshot in snapshots]

        insights = self._insights.generate(
            shares={s.category_id: s.share_percent for s in snapshots},
            trends={s.category_id: s.trend_percent for s in snapshots},
            recommendations=recommendations,
            monthly_budget=budget,
        )

        return RecommendationBundle(
            recommendations=recommendations,
            insights=insights,
            total_monthly_budget=budget,
            average_monthly_income=round_half_up(monthly_income),
            total_expenses=round_half_up(totals.total_spend),
        )

    def _snapshots_from(self, totals: CategoryTotals, expenses: Sequence[Transaction]) -> List[CategorySnapshot]:
        trends = self._category_trends(expenses)
        return [
            CategorySnapshot(
                category_id=category_id,
                average_amount=totals.average(category_id),
                share_percent=totals.share_percent(category_id),
                trend_percent=trends[category_id],
            )
            for category_id in self._aggregator.registry.ids
        ]

    def _category_trends(self, expenses: Sequence[Transaction]) -> Dict[str, float]:
        buckets = self._aggregator.monthly_buckets(expenses)
        return self._trends.category_trends(buckets, self._aggregator.registry.ids)

    @staticmethod
    def _insufficient_history(budget: float) -> RecommendationBundle:
        return RecommendationBundle(
            recommendations=[],
            insights=onboarding_insights(),
            total_monthly_budget=budget,
            average_monthly_income=0,
            total_expenses=0,
            insufficient_history=True,
        )
