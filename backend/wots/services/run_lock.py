"""
At-most-once marker for scheduled reminder runs.

One document per (date, slot) in detailReminderRuns. Creating it claims the
run; a second process that finds it already present skips the run.
"""

import logging
from datetime import datetime

import pytz
from google.api_core.exceptions import AlreadyExists

REMINDER_RUNS = "detailReminderRuns"

logger = logging.getLogger("service.RunLock")


def run_key(today: str, time_slot: str) -> str:
    return f"{today}_{time_slot}"


def claim_reminder_run(client, today: str, time_slot: str) -> bool:
    """Return True if this caller claimed the run, False if already claimed."""
    ref = client.collection(REMINDER_RUNS).document(run_key(today, time_slot))
    try:
        ref.create({
            "date": today,
            "timeSlot": time_slot,
            "claimedAt": datetime.now(pytz.utc),
        })
    except AlreadyExists:
        logger.info("Reminder run %s already claimed", run_key(today, time_slot))
        return False
    return True


def release_reminder_run(client, today: str, time_slot: str) -> None:
    """Drop the marker so a later tick can retry a run that failed."""
    client.collection(REMINDER_RUNS).document(run_key(today, time_slot)).delete()
    logger.info("Released reminder run %s", run_key(today, time_slot))
