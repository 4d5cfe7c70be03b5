import logging
from typing import Dict

from fastapi import APIRouter, Depends

from cashlyzer.core.errors import CashlyzerError
from cashlyzer.core.security import get_current_user_id
from cashlyzer.dependencies import get_analytics_service, http_error
from cashlyzer.services.analytics_service import AnalyticsService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/savings")
async def get_savings_prediction(
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict:
    """
    Predict next month's savings from the recent monthly history.
    """
    try:
        prediction, history = await service.get_savings_prediction(user_id)
    except CashlyzerError as e:
        logger.error(f"Savings prediction failed for user {user_id}: {str(e)}")
        raise http_error(e, "generate savings prediction")

    return {
        "message": "Savings prediction generated successfully",
        "prediction": prediction.to_dict(),
        "historical_data": [bucket.to_dict() for bucket in history],
    }
