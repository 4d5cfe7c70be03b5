"""FastAPI dependency providers. Tests replace these through app.dependency_overrides."""
from functools import lru_cache

from fastapi import HTTPException, status

from cashlyzer.core.config import settings
from cashlyzer.core.errors import CashlyzerError, ErrorKind
from cashlyzer.db.dynamo import DynamoNotificationSink, DynamoSavingsPlanStore, DynamoTransactionStore
from cashlyzer.services.analytics_service import AnalyticsService
from cashlyzer.services.savings_service import SavingsPlanService

_STATUS_FOR_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.TRANSIENT: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@lru_cache
def get_store() -> DynamoTransactionStore:
    return DynamoTransactionStore()


@lru_cache
def get_sink() -> DynamoNotificationSink:
    return DynamoNotificationSink()


@lru_cache
def get_plan_store() -> DynamoSavingsPlanStore:
    return DynamoSavingsPlanStore()


def get_analytics_service() -> AnalyticsService:
    return AnalyticsService(get_store(), get_sink(), settings.analytics)


def get_savings_service() -> SavingsPlanService:
    return SavingsPlanService(get_store(), get_plan_store())


def http_error(error: CashlyzerError, action: str) -> HTTPException:
    return HTTPException(status_code=_STATUS_FOR_KIND[error.kind], detail=f"Failed to {action}: {error.message}")
