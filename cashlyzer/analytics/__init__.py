"""
cashlyzer.analytics
~~~~~~~~~~~~~~~~~~~

Financial analytics engine for the Cashlyzer backend. Turns a user's raw
transaction history into category trends and budget recommendations, a
savings forecast with a confidence measure, and threshold-based alerts.

Every engine is a stateless object built from an AnalyticsConfig, so the same
instances can be shared by FastAPI routes and background jobs.
"""

from .aggregator import CategoryAggregator
from .alerts import AlertEvaluator
from .dashboard import dashboard_summary
from .forecaster import SavingsForecaster
from .insights import InsightGenerator
from .recommender import BudgetRecommender
from .records import (
    AlertEvent,
    AlertType,
    CategorySnapshot,
    Forecast,
    ForecastResult,
    InsightRecord,
    InsightType,
    InsufficientData,
    MonthlyBucket,
    RecommendationBundle,
    RecommendationResult,
    Severity,
    TrendDirection,
)
from .trends import TrendAnalyzer

__all__ = [
    "AlertEvaluator",
    "AlertEvent",
    "AlertType",
    "BudgetRecommender",
    "CategoryAggregator",
    "CategorySnapshot",
    "Forecast",
    "ForecastResult",
    "InsightGenerator",
    "InsightRecord",
    "InsightType",
    "InsufficientData",
    "MonthlyBucket",
    "RecommendationBundle",
    "RecommendationResult",
    "SavingsForecaster",
    "Severity",
    "TrendAnalyzer",
    "TrendDirection",
    "dashboard_summary",
]
