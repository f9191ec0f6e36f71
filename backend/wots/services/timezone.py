"""
Timezone helpers for the detail jobs.

All scheduled work runs against the unit's configured timezone, stored in
settings/appConfig (falls back to DEFAULT_TIMEZONE).
"""

import logging
from datetime import datetime
from typing import Optional

import pytz

from wots.config import config

logger = logging.getLogger("service.Timezone")

APP_CONFIG_DOC = "settings/appConfig"


def _now_in(timezone: str, now: Optional[datetime] = None) -> datetime:
    tz = pytz.timezone(timezone)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    return now.astimezone(tz)


def get_configured_timezone(client) -> str:
    """
    Read the IANA timezone from settings/appConfig.

    A missing document, a missing or unknown zone, or a failed read all fall
    back to the default.
    """
    try:
        snapshot = client.document(APP_CONFIG_DOC).get()
    except Exception as e:
        logger.warning("Failed to get configured timezone, using default: %s", e)
        return config.DEFAULT_TIMEZONE

    data = snapshot.to_dict() if snapshot.exists else None
    timezone = (data or {}).get("timezone")
    if not timezone:
        return config.DEFAULT_TIMEZONE

    if timezone not in pytz.all_timezones_set:
        logger.warning("Unknown timezone %r in %s, using default", timezone, APP_CONFIG_DOC)
        return config.DEFAULT_TIMEZONE
    return timezone


def get_today_in_timezone(timezone: str, now: Optional[datetime] = None) -> str:
    """Today's date as YYYY-MM-DD in `timezone`."""
    return _now_in(timezone, now).strftime("%Y-%m-%d")


def get_current_time_in_timezone(timezone: str, now: Optional[datetime] = None) -> str:
    """Current wall-clock time as HH:MM (24h) in `timezone`."""
    return _now_in(timezone, now).strftime("%H:%M")


def localize_date_time(date_str: str, time_str: str, timezone: str) -> datetime:
    """Aware datetime for a YYYY-MM-DD date at HH:MM local time."""
    naive = datetime.strptime(f"{date_str} {time_str}", "%Y-%m-%d %H:%M")
    return pytz.timezone(timezone).localize(naive)
