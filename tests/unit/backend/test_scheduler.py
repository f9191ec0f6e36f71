"""
Unit tests for the hourly detail reminder job.
"""

import pytest
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytz
from apscheduler.triggers.cron import CronTrigger

from wots import scheduler
from wots.config import config
from wots.errors import FirestoreUnavailableError
from wots.services.detail_config import DetailNotificationConfig


# 07:00 and 12:00 in New York on 2026-02-02
MORNING = datetime(2026, 2, 2, 12, 0, tzinfo=pytz.utc)
NOON = datetime(2026, 2, 2, 17, 0, tzinfo=pytz.utc)


@pytest.fixture
def job_patches():
    with patch("wots.scheduler.get_configured_timezone", return_value="America/New_York"), \
         patch("wots.scheduler.get_detail_notification_config") as mock_config, \
         patch("wots.scheduler.claim_reminder_run", return_value=True) as mock_claim, \
         patch("wots.scheduler.release_reminder_run") as mock_release, \
         patch("wots.scheduler.send_detail_reminders") as mock_send:
        mock_config.return_value = DetailNotificationConfig("07:00", "19:00", True)
        mock_send.return_value = {"sent": True}
        yield {"config": mock_config, "claim": mock_claim, "release": mock_release, "send": mock_send}


class TestRunScheduledDetailReminder:

    def test_runs_at_morning_time(self, mock_client, job_patches):
        notifier = MagicMock()

        result = scheduler.run_scheduled_detail_reminder(mock_client, notifier, now=MORNING)

        assert result == {"sent": True}
        job_patches["release"].assert_not_called()
        job_patches["claim"].assert_called_once_with(mock_client, "2026-02-02", "morning")
        job_patches["send"].assert_called_once_with(
            mock_client, notifier, "morning", "America/New_York", now=MORNING
        )

    def test_skips_off_schedule(self, mock_client, job_patches):
        result = scheduler.run_scheduled_detail_reminder(mock_client, MagicMock(), now=NOON)

        assert result["skipped"] is True
        assert result["reason"] == "Not a configured notification time"
        assert result["current_time"] == "12:00"
        job_patches["claim"].assert_not_called()
        job_patches["send"].assert_not_called()

    def test_skips_when_disabled(self, mock_client, job_patches):
        job_patches["config"].return_value = DetailNotificationConfig("07:00", "19:00", False)

        result = scheduler.run_scheduled_detail_reminder(mock_client, MagicMock(), now=MORNING)

        assert result["reason"] == "Detail notifications disabled"
        job_patches["send"].assert_not_called()

    def test_skips_when_run_already_claimed(self, mock_client, job_patches):
        job_patches["claim"].return_value = False

        result = scheduler.run_scheduled_detail_reminder(mock_client, MagicMock(), now=MORNING)

        assert result["reason"] == "Reminder run already claimed"
        assert result["time_slot"] == "morning"
        job_patches["send"].assert_not_called()

    def test_failed_run_releases_claim(self, mock_client, job_patches):
        job_patches["send"].side_effect = RuntimeError("deadline exceeded")

        with pytest.raises(RuntimeError):
            scheduler.run_scheduled_detail_reminder(mock_client, MagicMock(), now=MORNING)

        job_patches["release"].assert_called_once_with(mock_client, "2026-02-02", "morning")


class TestDetailReminderJob:

    @patch("wots.scheduler.get_firestore_client", return_value=None)
    def test_requires_firestore(self, _mock_client):
        with pytest.raises(FirestoreUnavailableError):
            scheduler.detail_reminder_job()

    @patch("wots.scheduler.get_notifier")
    @patch("wots.scheduler.get_firestore_client")
    @patch("wots.scheduler.run_scheduled_detail_reminder")
    def test_failures_are_reraised(self, mock_run, mock_get_client, _mock_notifier):
        mock_run.side_effect = RuntimeError("query failed")

        with pytest.raises(RuntimeError):
            scheduler.detail_reminder_job()
        mock_run.assert_called_once()


class TestStartScheduler:

    def teardown_method(self):
        scheduler.shutdown_scheduler()

    @patch("wots.scheduler.BackgroundScheduler")
    def test_disabled(self, mock_scheduler_cls):
        with patch.object(config, "ENABLE_SCHEDULER", False):
            assert scheduler.start_scheduler() is None
        mock_scheduler_cls.assert_not_called()

    @patch("wots.scheduler.BackgroundScheduler")
    def test_registers_hourly_job_once(self, mock_scheduler_cls):
        with patch.object(config, "ENABLE_SCHEDULER", True):
            first = scheduler.start_scheduler()
            second = scheduler.start_scheduler()

        assert first is second
        mock_scheduler_cls.assert_called_once_with(timezone=config.DEFAULT_TIMEZONE)
        instance = mock_scheduler_cls.return_value
        instance.start.assert_called_once()
        kwargs = instance.add_job.call_args.kwargs
        assert kwargs["id"] == scheduler.JOB_ID
        assert kwargs["max_instances"] == 1
        assert kwargs["coalesce"] is True
        assert isinstance(kwargs["trigger"], CronTrigger)
