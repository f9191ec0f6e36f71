"""
Unit tests for the detail reminder push transport.
"""

import pytest
from unittest.mock import MagicMock, patch

from firebase_admin import exceptions, messaging
from google.cloud.firestore_v1.transforms import ArrayRemove

from wots.config import config
from wots.services.messaging import (
    DetailReminder,
    FcmNotifier,
    LogOnlyNotifier,
    build_detail_notification,
    build_multicast_message,
    get_notifier,
    is_invalid_token_error,
    remove_invalid_tokens,
)


class TestBuildDetailNotification:

    def test_morning_title_and_body(self):
        reminder = build_detail_notification("morning", "0700", 3, "Barracks Cleaning")

        assert reminder.title == "[0700] Detail Reminder: Morning Cleaning"
        assert reminder.body == (
            "Barracks Cleaning\nYou have 3 tasks assigned\nTap to view and start your detail"
        )
        assert reminder.data == {
            "type": "detail_reminder",
            "timeSlot": "morning",
            "title": reminder.title,
            "body": reminder.body,
        }
        assert reminder.tag == "detail-reminder-morning"

    def test_single_task_without_template(self):
        reminder = build_detail_notification("evening", "1900", 1)

        assert reminder.title.endswith("Evening Cleaning")
        assert reminder.body.splitlines()[0] == "You have 1 task assigned"


class TestBuildMulticastMessage:

    def test_platform_options(self):
        reminder = build_detail_notification("evening", "1900", 2, "Latrines")

        message = build_multicast_message(["tok-1", "tok-2"], reminder)

        assert message.tokens == ["tok-1", "tok-2"]
        assert message.notification.title == reminder.title
        assert message.data["type"] == "detail_reminder"
        assert message.android.priority == "high"
        assert message.android.notification.channel_id == "wots_notifications"
        assert message.android.notification.tag == "detail-reminder-evening"
        assert message.webpush.fcm_options.link == "/details"
        assert message.apns.payload.aps.badge == 1


class TestInvalidTokenErrors:

    def test_unregistered_and_bad_registration_token_are_invalid(self):
        assert is_invalid_token_error(messaging.UnregisteredError("gone"))
        assert is_invalid_token_error(exceptions.InvalidArgumentError(
            "The registration token is not a valid FCM registration token"
        ))

    def test_payload_invalid_argument_keeps_tokens(self):
        """A malformed message fails every token; none of them are dead."""
        assert not is_invalid_token_error(exceptions.InvalidArgumentError(
            "Invalid JSON payload received. Unknown name \"colour\""
        ))

    def test_other_errors_are_not(self):
        assert not is_invalid_token_error(exceptions.UnavailableError("try later"))
        assert not is_invalid_token_error(None)


class TestFcmNotifier:

    @patch("firebase_admin.messaging.send_each_for_multicast")
    def test_reports_counts_and_invalid_tokens(self, mock_send):
        ok = MagicMock(success=True, exception=None)
        gone = MagicMock(success=False, exception=messaging.UnregisteredError("gone"))
        busy = MagicMock(success=False, exception=exceptions.UnavailableError("busy"))
        mock_send.return_value = MagicMock(success_count=1, failure_count=2, responses=[ok, gone, busy])
        app = MagicMock()

        result = FcmNotifier(app).send_multicast(
            ["tok-1", "tok-2", "tok-3"], build_detail_notification("morning", "0700", 1)
        )

        assert result.success_count == 1
        assert result.failure_count == 2
        assert result.invalid_tokens == ["tok-2"]
        sent_message = mock_send.call_args[0][0]
        assert sent_message.tokens == ["tok-1", "tok-2", "tok-3"]
        assert mock_send.call_args.kwargs["app"] is app

    @patch("firebase_admin.messaging.send_each_for_multicast")
    def test_payload_rejection_prunes_nothing(self, mock_send):
        error = exceptions.InvalidArgumentError("Invalid value at 'message.android.notification.color'")
        failed = MagicMock(success=False, exception=error)
        mock_send.return_value = MagicMock(success_count=0, failure_count=2, responses=[failed, failed])

        result = FcmNotifier(MagicMock()).send_multicast(
            ["tok-1", "tok-2"], build_detail_notification("evening", "1900", 1)
        )

        assert result.failure_count == 2
        assert result.invalid_tokens == []


class TestNotifierSelection:

    def test_log_only_when_push_disabled(self):
        with patch.object(config, "ENABLE_PUSH", False):
            notifier = get_notifier()

        assert isinstance(notifier, LogOnlyNotifier)
        result = notifier.send_multicast(["tok"], DetailReminder("morning", "t", "b"))
        assert (result.success_count, result.failure_count) == (0, 0)

    @patch("wots.services.messaging.get_firebase_app")
    def test_fcm_when_push_enabled(self, mock_app):
        with patch.object(config, "ENABLE_PUSH", True):
            notifier = get_notifier()

        assert isinstance(notifier, FcmNotifier)
        mock_app.assert_called_once()


class TestRemoveInvalidTokens:

    def test_array_remove_update(self):
        ref = MagicMock()

        remove_invalid_tokens(ref, ["tok-2"])

        update = ref.update.call_args[0][0]
        assert isinstance(update["fcmTokens"], ArrayRemove)
        assert list(update["fcmTokens"].values) == ["tok-2"]

    def test_nothing_to_remove(self):
        ref = MagicMock()

        remove_invalid_tokens(ref, [])

        ref.update.assert_not_called()
