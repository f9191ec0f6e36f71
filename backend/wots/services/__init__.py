"""
Backend services for WOTS details.

- detail_reset: reset / clone primitives for detailAssignments
- detail_reminders: daily reset + reminder push sequence
- detail_config: notification times from detailConfig/default
- messaging: FCM transport
- run_lock: at-most-once marker per (date, slot)
- timezone: date/time in the unit's timezone
"""

from .detail_reset import (
    reset_assignment_for_new_day,
    get_assignments_to_reset,
    reset_existing_assignments,
    get_most_recent_completed_assignment,
    clone_assignment_for_date,
    has_assignment_for_today,
    get_todays_assignments,
    resolve_todays_assignment,
    bulk_reset_assignments,
)
from .detail_reminders import send_detail_reminders

__all__ = [
    "reset_assignment_for_new_day",
    "get_assignments_to_reset",
    "reset_existing_assignments",
    "get_most_recent_completed_assignment",
    "clone_assignment_for_date",
    "has_assignment_for_today",
    "get_todays_assignments",
    "resolve_todays_assignment",
    "bulk_reset_assignments",
    "send_detail_reminders",
]
