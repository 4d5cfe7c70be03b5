"""
Scheduler Service
Runs background maintenance jobs using APScheduler
"""
import logging
from typing import Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from cashlyzer.core.config import settings

logger = logging.getLogger(__name__)

NOTIFICATION_CLEANUP_JOB_ID = "notification_cleanup"

# Scheduler instance (exported for the health router)
scheduler: Optional[BackgroundScheduler] = None


def notification_cleanup_job(sink=None) -> Dict:
    """Delete notifications older than the configured retention period"""
    retention_days = settings.analytics.notification_retention_days
    logger.info(f"Executing notification cleanup job (retention={retention_days} days)...")
    try:
        if sink is None:
            from cashlyzer.db.dynamo import DynamoNotificationSink

            sink = DynamoNotificationSink()
        deleted = sink.purge_expired(retention_days)
        logger.info(f"Notification cleanup removed {deleted} notification(s)")
        return {"success": True, "deleted": deleted}
    except Exception as e:
        logger.error(f"Error in notification cleanup job: {str(e)}", exc_info=True)
        return {"success": False, "error": str(e)}


def start_scheduler():
    """Start the background scheduler"""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        notification_cleanup_job,
        trigger=CronTrigger(hour=settings.NOTIFICATION_CLEANUP_HOUR, minute=0),
        id=NOTIFICATION_CLEANUP_JOB_ID,
        name="Notification Cleanup",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started; notification cleanup runs daily at {settings.NOTIFICATION_CLEANUP_HOUR:02d}:00 UTC")


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "jobs": jobs
    }
