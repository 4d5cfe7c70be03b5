from __future__ import annotations

import logging
import math
import statistics
from typing import List, Optional, Sequence, Tuple

from cashlyzer.analytics.records import (
    Forecast,
    ForecastResult,
    InsufficientData,
    MonthlyBucket,
    TrendDirection,
)
from cashlyzer.core.config import AnalyticsConfig
from cashlyzer.utils.numbers import clamp, round_half_up

logger = logging.getLogger(__name__)

# sum of squared deviations (currency units squared) below which a series is flat
FLAT_TOLERANCE = 1e-9

SUGGESTION_TOO_VARIABLE = "Your savings pattern is quite variable. Consider tracking expenses more consistently."
SUGGESTION_EXCEEDING = "Great job! You're exceeding your savings goals. Consider increasing your budget."
SUGGESTION_ON_TRACK = "You're on track! Keep up the good work with your current spending habits."
SUGGESTION_IMPROVING = "Your savings are improving. Try to maintain this positive trend."
SUGGESTION_DECLINING = "Warning: Your savings are decreasing. Review your recent expenses and adjust your budget."
SUGGESTION_SLIGHTLY_DECREASING = "Your savings are slightly decreasing. Consider reviewing your spending patterns."


def fit_line(values: Sequence[float]) -> Tuple[float, float, float]:
    """
    Ordinary least squares over x = 0..n-1. Returns (slope, intercept, r_squared).
    A series with no variance is fitted exactly by a flat line, so its
    r_squared is 1.0 and its slope 0.
    """
    xs = list(range(len(values)))
    mean = statistics.fmean(values)
    total = sum((y - mean) ** 2 for y in values)
    if math.isclose(total, 0.0, abs_tol=FLAT_TOLERANCE):
        return 0.0, mean, 1.0

    slope, intercept = statistics.linear_regression(xs, values)

    residual = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, values))
    return slope, intercept, 1 - residual / total


def moving_average(values: Sequence[float], window: int = 3) -> Optional[List[float]]:
    if len(values) < window:
        return None
    return [statistics.fmean(values[i - window + 1 : i + 1]) for i in range(window - 1, len(values))]


class SavingsForecaster:
    """Predicts next month's net savings from a chronological monthly series."""

    def __init__(self, config: Optional[AnalyticsConfig] = None) -> None:
        self._config = config or AnalyticsConfig()

    def insufficient(self, available: int) -> InsufficientData:
        required = self._config.forecast_min_points
        return InsufficientData(
            required_points=required,
            available_points=available,
            message=(
                "Not enough data to make a prediction. "
                f"Please enter at least {required} months of income and expenses."
            ),
        )

    def forecast(self, months: Sequence[MonthlyBucket], monthly_budget: Optional[float]) -> ForecastResult:
        if len(months) < self._config.forecast_min_points:
            return self.insufficient(len(months))

        # whole cents
        savings = [round(month.total_income - month.total_expense, 2) for month in months]
        slope, intercept, r_squared = fit_line(savings)

        predicted = round_half_up(slope * len(savings) + intercept)
        direction = TrendDirection.INCREASING if slope > 0 else TrendDirection.DECREASING
        confidence = clamp(abs(r_squared), 0.0, 1.0)

        budget = float(monthly_budget or 0)
        utilization = predicted / budget * 100 if budget > 0 else 0.0

        logger.debug(
            f"Savings fit over {len(savings)} months: slope={slope:.2f}, intercept={intercept:.2f}, r2={r_squared:.3f}"
        )

        return Forecast(
            predicted_savings=predicted,
            trend_direction=direction,
            confidence=confidence,
            suggestion=self.suggest(confidence, direction, utilization),
            budget_utilization_percent=round_half_up(utilization),
            moving_average=moving_average(savings, self._config.moving_average_window),
        )

    def suggest(self, confidence: float, direction: TrendDirection, utilization: float) -> str:
        cfg = self._config
        if confidence < cfg.forecast_min_confidence:
            return SUGGESTION_TOO_VARIABLE
        if direction == TrendDirection.INCREASING:
            if utilization >= cfg.forecast_exceeding_percent:
                return SUGGESTION_EXCEEDING
            if utilization >= cfg.forecast_on_track_percent:
                return SUGGESTION_ON_TRACK
            return SUGGESTION_IMPROVING
        if utilization < cfg.forecast_declining_percent:
            return SUGGESTION_DECLINING
        return SUGGESTION_SLIGHTLY_DECREASING
