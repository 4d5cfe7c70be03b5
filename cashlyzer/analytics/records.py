from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class InsightType(str, Enum):
    WELCOME = "welcome"
    GETTING_STARTED = "getting_started"
    TIPS = "tips"
    TOP_CATEGORIES = "top_categories"
    SPENDING_TREND = "spending_trend"
    BUDGET_UTILIZATION = "budget_utilization"
    SAVINGS_ALERT = "savings_alert"
    SAVINGS_SUCCESS = "savings_success"
    SAVINGS_INFO = "savings_info"
    CATEGORY_ALERT = "category_alert"
    GENERAL = "general"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"


class AlertType(str, Enum):
    BUDGET_ALERT = "budget_alert"
    SPENDING_SPIKE = "spending_spike"
    SAVINGS_ALERT = "savings_alert"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


@dataclass
class MonthlyBucket:
    """Totals for one calendar month."""

    month_key: str
    per_category_total: Dict[str, float] = field(default_factory=dict)
    total_income: float = 0.0
    total_expense: float = 0.0

    @property
    def savings(self) -> float:
        return self.total_income - self.total_expense

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CategoryTotals:
    """Per-category totals and transaction counts over a whole period."""

    totals: Dict[str, float]
    counts: Dict[str, int]
    skipped: int = 0

    @property
    def total_spend(self) -> float:
        return sum(self.totals.values())

    def average(self, category_id: str) -> float:
        count = self.counts.get(category_id, 0)
        return self.totals.get(category_id, 0.0) / count if count else 0.0

    def share_percent(self, category_id: str) -> float:
        total = self.total_spend
        return self.totals.get(category_id, 0.0) / total * 100 if total > 0 else 0.0


@dataclass
class CategorySnapshot:
    category_id: str
    average_amount: float
    share_percent: float
    trend_percent: float


@dataclass
class RecommendationResult:
    category_id: str
    recommended: int
    current: int
    trend_percent: int
    share_percent: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class InsightRecord:
    type: InsightType
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return _plain(asdict(self))


@dataclass
class RecommendationBundle:
    recommendations: List[RecommendationResult]
    insights: List[InsightRecord]
    total_monthly_budget: float
    average_monthly_income: int
    total_expenses: int
    insufficient_history: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommendations": {rec.category_id: rec.to_dict() for rec in self.recommendations},
            "insights": [insight.to_dict() for insight in self.insights],
            "summary": {
                "total_monthly_budget": self.total_monthly_budget,
                "average_monthly_income": self.average_monthly_income,
                "total_expenses": self.total_expenses,
            },
            "insufficient_history": self.insufficient_history,
        }


@dataclass
class InsufficientData:
    """Forecast result when there are not enough monthly data points."""

    required_points: int
    available_points: int
    message: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = "insufficient_data"
        return data


@dataclass
class Forecast:
    predicted_savings: int
    trend_direction: TrendDirection
    confidence: float
    suggestion: str
    budget_utilization_percent: int
    moving_average: Optional[List[float]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = _plain(asdict(self))
        data["status"] = "ok"
        # Remove None values for cleaner JSON responses
        return {k: v for k, v in data.items() if v is not None}


ForecastResult = Union[Forecast, InsufficientData]


@dataclass
class AlertEvent:
    type: AlertType
    message: str
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return _plain(asdict(self))
