from __future__ import annotations

from typing import Dict, List, Optional

from cashlyzer.analytics.records import InsightRecord, InsightType, RecommendationResult
from cashlyzer.constants.categories import CATEGORY_REGISTRY, CategoryRegistry
from cashlyzer.core.config import AnalyticsConfig
from cashlyzer.utils.numbers import round_half_up

ONBOARDING_INSIGHTS = (
    (InsightType.WELCOME, "Welcome to Cashlyzer! Let's get started with managing your finances."),
    (InsightType.GETTING_STARTED, "Add your first expense to begin tracking your spending habits."),
    (InsightType.TIPS, "Pro tip: Set up your monthly budget to get personalized recommendations."),
)


def onboarding_insights() -> List[InsightRecord]:
    return [InsightRecord(type=kind, message=message) for kind, message in ONBOARDING_INSIGHTS]


class InsightGenerator:
    """
    Deterministic rule set over spending shares, trends and recommendations.
    Rules run in a fixed order and several may fire; the result is never empty.
    """

    def __init__(self, config: Optional[AnalyticsConfig] = None, registry: Optional[CategoryRegistry] = None) -> None:
        self._config = config or AnalyticsConfig()
        self._registry = registry or CATEGORY_REGISTRY

    def generate(
        self,
        shares: Dict[str, float],
        trends: Dict[str, float],
        recommendations: List[RecommendationResult],
        monthly_budget: float,
    ) -> List[InsightRecord]:
        insights: List[InsightRecord] = []

        top = self._top_categories(shares)
        if top:
            insights.append(top)
        insights.extend(self._trend_alerts(trends))

        utilization = self._budget_utilization(recommendations, monthly_budget)
        if utilization:
            insights.append(utilization)

        savings = self._savings_rate(recommendations)
        if savings:
            insights.append(savings)
        insights.extend(self._category_dominance(shares))

        if not insights:
            insights.append(
                InsightRecord(
                    type=InsightType.GENERAL,
                    message="Keep tracking your expenses to get more personalized insights.",
                )
            )
        return insights

    def _top_categories(self, shares: Dict[str, float]) -> Optional[InsightRecord]:
        ranked = sorted(
            ((category_id, share) for category_id, share in shares.items() if share > 0),
            key=lambda item: item[1],
            reverse=True,
        )[: self._config.top_categories_limit]
        if not ranked:
            return None

        listing = ", ".join(
            f"{self._registry.display_name(category_id)} {round_half_up(share)}%" for category_id, share in ranked
        )
        return InsightRecord(type=InsightType.TOP_CATEGORIES, message=f"Your top spending categories are: {listing}")

    def _trend_alerts(self, trends: Dict[str, float]) -> List[InsightRecord]:
        alerts = []
        for category_id, trend in trends.items():
            if abs(trend) <= self._config.trend_insight_percent:
                continue
            direction = "increased" if trend > 0 else "decreased"
            alerts.append(
                InsightRecord(
                    type=InsightType.SPENDING_TREND,
                    message=(
                        f"Spending on {self._registry.display_name(category_id)} has {direction} "
                        f"by {round_half_up(abs(trend))}%"
                    ),
                )
            )
        return alerts

    @staticmethod
    def _budget_utilization(recommendations: List[RecommendationResult], monthly_budget: float) -> Optional[InsightRecord]:
        total_recommended = sum(rec.recommended for rec in recommendations)
        if total_recommended <= 0 or not monthly_budget or monthly_budget <= 0:
            return None

        utilization = total_recommended / monthly_budget * 100
        return InsightRecord(
            type=InsightType.BUDGET_UTILIZATION,
            message=(
                f"Your recommended budget allocation represents {round_half_up(utilization)}% "
                "of your total monthly budget"
            ),
        )

    def _savings_rate(self, recommendations: List[RecommendationResult]) -> Optional[InsightRecord]:
        total_recommended = sum(rec.recommended for rec in recommendations)
        total_current = sum(rec.current for rec in recommendations)
        if total_recommended == 0 and total_current == 0:
            return None
        savings_rate = (total_recommended - total_current) / total_recommended * 100 if total_recommended > 0 else 0.0

        if savings_rate < self._config.savings_rate_low_percent:
            return InsightRecord(
                type=InsightType.SAVINGS_ALERT,
                message=(
                    f"Your savings rate is below {round_half_up(self._config.savings_rate_low_percent)}%. "
                    "Consider reducing expenses to increase savings."
                ),
            )
        if savings_rate > self._config.savings_rate_high_percent:
            return InsightRecord(
                type=InsightType.SAVINGS_SUCCESS,
                message=f"Great job! You're saving {round_half_up(savings_rate)}% of your income.",
            )
        return InsightRecord(type=InsightType.SAVINGS_INFO, message=f"Your current savings rate is {round_half_up(savings_rate)}%.")

    def _category_dominance(self, shares: Dict[str, float]) -> List[InsightRecord]:
        return [
            InsightRecord(
                type=InsightType.CATEGORY_ALERT,
                message=(
                    f"{self._registry.display_name(category_id)} represents {round_half_up(share)}% of your spending. "
                    "Consider if this aligns with your financial goals."
                ),
            )
            for category_id, share in shares.items()
            if share > self._config.dominance_percent
        ]
