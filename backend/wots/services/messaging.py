"""
Push notification transport for detail reminders (FCM via firebase-admin).

The reminder dispatcher only needs `send_multicast(tokens, reminder)`;
FcmNotifier does the real send, LogOnlyNotifier stands in when push is
disabled (local development, tests).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from google.cloud import firestore

from wots.config import config

logger = logging.getLogger("service.Messaging")

DEFAULT_TEMPLATE_NAME = "Cleaning Detail"
ANDROID_CHANNEL_ID = "wots_notifications"
ANDROID_COLOR = "#4a5d23"
ICON = "/icon-192x192.png"

_firebase_app = None


@dataclass
class DetailReminder:
    """Title/body/data of one reminder push."""
    time_slot: str
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)

    @property
    def tag(self) -> str:
        return f"detail-reminder-{self.time_slot}"


@dataclass
class MulticastResult:
    """Per-send counts plus the tokens FCM reported as dead."""
    success_count: int = 0
    failure_count: int = 0
    invalid_tokens: List[str] = field(default_factory=list)


def build_detail_notification(
    time_slot: str,
    time_str: str,
    task_count: int,
    template_name: Optional[str] = None,
) -> DetailReminder:
    """
    Build the reminder text.

    time_str is the local send time as HHMM, e.g. "0700".
    """
    slot_label = "Morning" if time_slot == "morning" else "Evening"
    title = f"[{time_str}] Detail Reminder: {slot_label} Cleaning"

    body_parts = []
    if template_name:
        body_parts.append(template_name)
    body_parts.append(f"You have {task_count} task{'' if task_count == 1 else 's'} assigned")
    body_parts.append("Tap to view and start your detail")
    body = "\n".join(body_parts)

    return DetailReminder(
        time_slot=time_slot,
        title=title,
        body=body,
        data={
            "type": "detail_reminder",
            "timeSlot": time_slot,
            "title": title,
            "body": body,
        },
    )


def build_multicast_message(tokens: List[str], reminder: DetailReminder):
    """Translate a DetailReminder into a firebase-admin MulticastMessage."""
    from firebase_admin import messaging

    return messaging.MulticastMessage(
        tokens=list(tokens),
        notification=messaging.Notification(title=reminder.title, body=reminder.body),
        data=reminder.data,
        webpush=messaging.WebpushConfig(
            notification=messaging.WebpushNotification(
                icon=ICON,
                badge=ICON,
                tag=reminder.tag,
                require_interaction=False,
            ),
            fcm_options=messaging.WebpushFCMOptions(link="/details"),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    alert=messaging.ApsAlert(title=reminder.title, body=reminder.body),
                    badge=1,
                    sound="default",
                ),
            ),
        ),
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                icon="ic_notification",
                color=ANDROID_COLOR,
                channel_id=ANDROID_CHANNEL_ID,
                tag=reminder.tag,
            ),
        ),
    )


def is_invalid_token_error(exc: Any) -> bool:
    """
    True for errors meaning the registration token should be dropped.

    INVALID_ARGUMENT also covers malformed payloads, which fail every token
    in the send, so it only counts when FCM blames the registration token.
    """
    from firebase_admin import exceptions, messaging

    if isinstance(exc, messaging.UnregisteredError):
        return True
    if isinstance(exc, exceptions.InvalidArgumentError):
        return "registration token" in str(exc).lower()
    return False


class FcmNotifier:
    """Sends reminders through Firebase Cloud Messaging."""

    def __init__(self, app=None):
        self._app = app

    def send_multicast(self, tokens: List[str], reminder: DetailReminder) -> MulticastResult:
        from firebase_admin import messaging

        response = messaging.send_each_for_multicast(
            build_multicast_message(tokens, reminder), app=self._app
        )

        invalid = [
            tokens[idx]
            for idx, resp in enumerate(response.responses)
            if not resp.success and is_invalid_token_error(resp.exception)
        ]
        return MulticastResult(
            success_count=response.success_count,
            failure_count=response.failure_count,
            invalid_tokens=invalid,
        )


class LogOnlyNotifier:
    """Used when ENABLE_PUSH is off: logs what would have been sent."""

    def send_multicast(self, tokens: List[str], reminder: DetailReminder) -> MulticastResult:
        logger.info("Push disabled, not sending %r to %d token(s)", reminder.title, len(tokens))
        return MulticastResult()


def get_firebase_app():
    """Initialize the firebase-admin app once, with the Firestore credentials."""
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app

    import firebase_admin
    from firebase_admin import credentials

    creds_path = config.resolve_credentials_path()
    options = {"projectId": config.GCP_PROJECT_ID} if config.GCP_PROJECT_ID else None
    _firebase_app = firebase_admin.initialize_app(
        credentials.Certificate(str(creds_path)), options, name="wots"
    )
    logger.info("Firebase app initialized for messaging")
    return _firebase_app


def get_notifier():
    """FcmNotifier when push is enabled, LogOnlyNotifier otherwise."""
    if not config.ENABLE_PUSH:
        return LogOnlyNotifier()
    return FcmNotifier(get_firebase_app())


def remove_invalid_tokens(user_reference, invalid_tokens: List[str]) -> None:
    """Drop dead registration tokens from a user's fcmTokens array."""
    if not invalid_tokens:
        return
    user_reference.update({"fcmTokens": firestore.ArrayRemove(list(invalid_tokens))})
    logger.info("Removed %d invalid token(s) from user %s", len(invalid_tokens), user_reference.id)
