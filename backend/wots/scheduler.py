"""
Scheduled detail reminders.

The job runs every hour on the hour and only does work when the local time
in the unit's timezone matches the configured morning or evening
notification time.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from wots.config import config
from wots.db.firestore import get_firestore_client
from wots.errors import FirestoreUnavailableError
from wots.services.detail_config import get_detail_notification_config, match_time_slot
from wots.services.detail_reminders import send_detail_reminders
from wots.services.messaging import get_notifier
from wots.services.run_lock import claim_reminder_run, release_reminder_run
from wots.services.timezone import (
    get_configured_timezone,
    get_current_time_in_timezone,
    get_today_in_timezone,
)

logger = logging.getLogger("wots.scheduler")

JOB_ID = "scheduled_detail_reminder"

_scheduler = None


def run_scheduled_detail_reminder(client, notifier, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    One tick of the hourly job.

    Returns a dict with skipped=True and a reason when nothing was due,
    otherwise the send_detail_reminders result.
    """
    timezone = get_configured_timezone(client)
    current_time = get_current_time_in_timezone(timezone, now)
    detail_config = get_detail_notification_config(client)

    if not detail_config.notification_enabled:
        return {
            "skipped": True,
            "reason": "Detail notifications disabled",
            "current_time": current_time,
            "timezone": timezone,
        }

    time_slot = match_time_slot(detail_config, current_time)
    if time_slot is None:
        return {
            "skipped": True,
            "reason": "Not a configured notification time",
            "current_time": current_time,
            "timezone": timezone,
            "morning_time": detail_config.morning_notification_time,
            "evening_time": detail_config.evening_notification_time,
        }

    today = get_today_in_timezone(timezone, now)
    if not claim_reminder_run(client, today, time_slot):
        return {
            "skipped": True,
            "reason": "Reminder run already claimed",
            "current_time": current_time,
            "timezone": timezone,
            "time_slot": time_slot,
            "date": today,
        }

    logger.info("Detail reminder triggered for %s at %s (%s)", time_slot, current_time, timezone)
    try:
        result = send_detail_reminders(client, notifier, time_slot, timezone, now=now)
    except Exception:
        # Leave the (date, slot) open for a retry
        release_reminder_run(client, today, time_slot)
        raise
    logger.info("Detail reminder result: %s", result)
    return result


def detail_reminder_job():
    """APScheduler entry point: resolves clients, then runs one tick."""
    client = get_firestore_client()
    if client is None:
        raise FirestoreUnavailableError("Firestore is not available; skipping detail reminder")

    try:
        return run_scheduled_detail_reminder(client, get_notifier())
    except Exception:
        logger.exception("Scheduled detail reminder failed")
        raise


def start_scheduler():
    """
    Start APScheduler once.

    Respects ENABLE_SCHEDULER and ignores repeat calls (Flask reloader,
    multiple create_app calls).
    """
    global _scheduler

    if not config.ENABLE_SCHEDULER:
        logger.info("Scheduler disabled via settings (ENABLE_SCHEDULER=false)")
        return None

    if _scheduler is not None:
        logger.info("Scheduler already running, skipping initialization")
        return _scheduler

    _scheduler = BackgroundScheduler(timezone=config.DEFAULT_TIMEZONE)
    _scheduler.add_job(
        detail_reminder_job,
        trigger=CronTrigger(minute=0),
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,      # No overlapping runs
        coalesce=True,        # Merge missed runs if the process was down
    )
    _scheduler.start()

    logger.info("Scheduler started: detail reminder check every hour on the hour")
    return _scheduler


def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
