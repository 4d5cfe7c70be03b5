"""
Notifications Router
Inbox for the alerts published after each new expense
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from cashlyzer.core.config import settings
from cashlyzer.core.errors import CashlyzerError
from cashlyzer.core.security import get_current_user_id
from cashlyzer.db.dynamo import DynamoNotificationSink
from cashlyzer.dependencies import get_sink, http_error

router = APIRouter()


@router.get("/")
async def get_notifications(
    limit: Optional[int] = Query(None, ge=1, le=100),
    unread_only: bool = True,
    user_id: str = Depends(get_current_user_id),
    sink: DynamoNotificationSink = Depends(get_sink),
) -> Dict:
    """
    Most recent notifications first. Only unread ones unless unread_only=false.
    """
    limit = limit or settings.analytics.notification_list_limit
    try:
        notifications = await sink.list_notifications(user_id, limit=limit, unread_only=unread_only)
    except CashlyzerError as e:
        raise http_error(e, "fetch notifications")

    severity_counts = {
        "high": len([n for n in notifications if n.get("severity") == "high"]),
        "medium": len([n for n in notifications if n.get("severity") == "medium"]),
    }
    return {
        "notifications": notifications,
        "count": len(notifications),
        "severity_counts": severity_counts,
    }


@router.patch("/read-all")
async def mark_all_notifications_read(
    user_id: str = Depends(get_current_user_id),
    sink: DynamoNotificationSink = Depends(get_sink),
) -> Dict:
    try:
        updated = await sink.mark_all_as_read(user_id)
    except CashlyzerError as e:
        raise http_error(e, "mark notifications as read")
    return {"message": "All notifications marked as read", "updated": updated}


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    sink: DynamoNotificationSink = Depends(get_sink),
) -> Dict:
    try:
        await sink.mark_as_read(user_id, notification_id)
    except CashlyzerError as e:
        raise http_error(e, "mark notification as read")
    return {"message": "Notification marked as read", "notification_id": notification_id}


@router.delete("/")
async def delete_old_notifications(
    days: Optional[int] = Query(None, ge=1),
    user_id: str = Depends(get_current_user_id),
    sink: DynamoNotificationSink = Depends(get_sink),
) -> Dict:
    days = days or settings.analytics.notification_retention_days
    try:
        deleted = await sink.delete_older_than(user_id, days=days)
    except CashlyzerError as e:
        raise http_error(e, "delete notifications")
    return {"message": f"Deleted notifications older than {days} days", "deleted": deleted}
