from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalyticsConfig(BaseSettings):
    """
    Thresholds and limits used by the analytics engines.

    Every value can be overridden with an ANALYTICS_<NAME> environment variable.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANALYTICS_",
        env_file=".env",
        extra="ignore",
    )

    # Recommendation engine
    trend_adjust_percent: float = Field(default=20.0, description="Trend magnitude that triggers a budget adjustment")
    growth_factor: float = Field(default=0.9, description="Multiplier applied when spending grows faster than the trend threshold")
    shrink_factor: float = Field(default=1.1, description="Multiplier applied when spending shrinks faster than the trend threshold")

    # Insight generator
    top_categories_limit: int = Field(default=3, gt=0)
    trend_insight_percent: float = 20.0
    dominance_percent: float = 30.0
    savings_rate_low_percent: float = 20.0
    savings_rate_high_percent: float = 30.0

    # Savings forecaster
    forecast_min_points: int = Field(default=3, ge=2)
    forecast_min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    forecast_exceeding_percent: float = 90.0
    forecast_on_track_percent: float = 70.0
    forecast_declining_percent: float = 50.0
    forecast_history_months: int = Field(default=6, gt=0)
    moving_average_window: int = Field(default=3, gt=0)

    # Alert evaluator
    alert_budget_ratio: float = 0.8
    alert_budget_high_ratio: float = 1.0
    alert_spike_ratio: float = 0.5
    alert_savings_rate: float = 0.2

    # Notification inbox
    notification_retention_days: int = Field(default=30, gt=0)
    notification_list_limit: int = Field(default=10, gt=0)


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "Cashlyzer"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1", validation_alias="DYNAMO_REGION")
    DYNAMO_USERS_TABLE: str = Field(default="cashlyzer-users", validation_alias="DYNAMO_TABLE_USERS")
    DYNAMO_TRANSACTIONS_TABLE: str = Field(default="cashlyzer-transactions", validation_alias="DYNAMO_TABLE_TRANSACTIONS")
    DYNAMO_NOTIFICATIONS_TABLE: str = Field(default="cashlyzer-notifications", validation_alias="DYNAMO_TABLE_NOTIFICATIONS")
    DYNAMO_SAVINGS_TABLE: str = Field(default="cashlyzer-savings", validation_alias="DYNAMO_TABLE_SAVINGS")

    # JWT verification (tokens are issued by the auth service)
    JWT_SECRET_KEY: str = Field(default="change-me", validation_alias="JWT_SECRET")
    JWT_ALGORITHM: str = "HS256"

    # Background jobs
    NOTIFICATION_CLEANUP_HOUR: int = Field(default=3, ge=0, le=23)
    SCHEDULER_ENABLED: bool = True

    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
