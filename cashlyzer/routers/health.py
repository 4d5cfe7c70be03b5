"""
Health Check Router
Liveness plus a connectivity report for the DynamoDB tables and the scheduler
"""
import asyncio
import logging
from datetime import datetime
from typing import Dict

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends

from cashlyzer.core.config import settings
from cashlyzer.core.errors import describe
from cashlyzer.db.dynamo import DynamoNotificationSink, DynamoTransactionStore
from cashlyzer.dependencies import get_sink, get_store
from cashlyzer.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


async def _check_table(name: str, table) -> Dict:
    try:
        await asyncio.to_thread(table.scan, Limit=1)
        return {"name": name, "status": "accessible", "region": settings.DYNAMO_REGION}
    except (ClientError, BotoCoreError) as e:
        logger.error(f"DynamoDB check failed for {name}: {describe(e)}")
        return {"name": name, "status": "error", "error": describe(e)}


@router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/status")
async def service_status(
    store: DynamoTransactionStore = Depends(get_store),
    sink: DynamoNotificationSink = Depends(get_sink),
):
    """
    Check the users, transactions and notifications tables and report the
    background scheduler's jobs.
    """
    users, transactions, notifications = await asyncio.gather(
        _check_table(settings.DYNAMO_USERS_TABLE, store.users_table),
        _check_table(settings.DYNAMO_TRANSACTIONS_TABLE, store.transactions_table),
        _check_table(settings.DYNAMO_NOTIFICATIONS_TABLE, sink.notifications_table),
    )
    tables = {"users": users, "transactions": transactions, "notifications": notifications}
    connected = all(table["status"] == "accessible" for table in tables.values())

    return {
        "timestamp": datetime.utcnow().isoformat(),
        "services": {
            "dynamodb": {"connected": connected, "tables": tables},
            "scheduler": get_scheduler_status(),
        },
        "overall_status": "healthy" if connected else "degraded",
    }
