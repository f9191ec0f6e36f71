"""
Detail notification settings stored in detailConfig/default.
"""

from dataclasses import dataclass, asdict
from typing import Optional

DETAIL_CONFIG_DOC = "detailConfig/default"

DEFAULT_MORNING_TIME = "07:00"
DEFAULT_EVENING_TIME = "19:00"


@dataclass
class DetailNotificationConfig:
    morning_notification_time: str = DEFAULT_MORNING_TIME
    evening_notification_time: str = DEFAULT_EVENING_TIME
    notification_enabled: bool = True

    def to_dict(self):
        return asdict(self)


def get_detail_notification_config(client) -> DetailNotificationConfig:
    """Load the config document; a missing document yields the defaults."""
    snapshot = client.document(DETAIL_CONFIG_DOC).get()
    if not snapshot.exists:
        return DetailNotificationConfig()

    data = snapshot.to_dict() or {}
    return DetailNotificationConfig(
        morning_notification_time=data.get("morningNotificationTime") or DEFAULT_MORNING_TIME,
        evening_notification_time=data.get("eveningNotificationTime") or DEFAULT_EVENING_TIME,
        # Only an explicit false turns reminders off
        notification_enabled=data.get("notificationEnabled") is not False,
    )


def match_time_slot(detail_config: DetailNotificationConfig, current_time: str) -> Optional[str]:
    """Slot whose notification time equals `current_time` (HH:MM), if any."""
    if current_time == detail_config.morning_notification_time:
        return "morning"
    if current_time == detail_config.evening_notification_time:
        return "evening"
    return None
