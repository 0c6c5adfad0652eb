"""
Tests for the notification delivery tasks.

Tests:
- Delivery stamps the row and sets the delivered marker
- Redelivered tasks are skipped
- Mail is chained once per notification, across retries and redeliveries
- Failures go back to Celery for retry
- Pending rows past the retry window are re-published
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from celery.exceptions import Retry

from workers.tasks import notifications as tasks

PAYLOAD = {
    "notification_id": 41,
    "user_id": 7,
    "type": "job_assigned",
    "title": "New Job Assignment",
    "message": "You have been assigned to job request 'Backend Engineer'",
    "related_entity_type": "job_request",
    "related_entity_id": 3,
    "email": None,
}

MAIL_PAYLOAD = {**PAYLOAD, "email": "hr@acme-corp.com"}


class FakeRedis:
    """Just enough of redis.Redis for the delivery markers."""

    def __init__(self):
        self.store = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def exists(self, key):
        return int(key in self.store)

    def delete(self, key):
        return int(self.store.pop(key, None) is not None)


@pytest.fixture
def cache():
    fake = FakeRedis()
    with patch.object(tasks, "get_redis", return_value=fake):
        yield fake


@pytest.fixture
def stamp():
    with patch.object(tasks, "_stamp_delivered", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def mailer():
    with patch.object(tasks.send_email, "delay") as mock:
        yield mock


def _run_retrying(payload):
    """Run the task, turning a retry request into the Retry Celery would raise."""
    with patch.object(tasks.deliver_notification, "retry", side_effect=Retry()) as retry:
        with pytest.raises(Retry):
            tasks.deliver_notification(payload)
    return retry


class TestDeliverNotification:
    def test_delivers_and_marks(self, cache, stamp, mailer):
        result = tasks.deliver_notification(PAYLOAD)

        assert result == {"status": "delivered", "notification_id": 41}
        stamp.assert_awaited_once_with(41)
        assert cache.exists("notification:delivered:41")
        mailer.assert_not_called()

    def test_duplicate_is_skipped(self, cache, stamp, mailer):
        cache.set("notification:delivered:41", 1)

        result = tasks.deliver_notification(PAYLOAD)

        assert result["status"] == "duplicate"
        stamp.assert_not_awaited()
        mailer.assert_not_called()

    def test_chains_email_when_address_present(self, cache, stamp, mailer):
        tasks.deliver_notification(MAIL_PAYLOAD)

        mailer.assert_called_once()
        args, kwargs = mailer.call_args
        assert args[0] == "hr@acme-corp.com"
        assert args[1] == "New Job Assignment"
        assert "/job_requests/3" in args[2]
        assert kwargs == {"html": True}
        assert cache.exists("notification:emailed:41")

    def test_failure_retries(self, cache, stamp, mailer):
        stamp.side_effect = ConnectionError("database unavailable")

        retry = _run_retrying(PAYLOAD)

        assert isinstance(retry.call_args.kwargs["exc"], ConnectionError)
        assert not cache.exists("notification:delivered:41")

    def test_retry_after_failed_stamp_does_not_mail_again(self, cache, stamp, mailer):
        stamp.side_effect = [ConnectionError("database unavailable"), None]

        _run_retrying(MAIL_PAYLOAD)
        result = tasks.deliver_notification(MAIL_PAYLOAD)

        assert result["status"] == "delivered"
        assert stamp.await_count == 2
        mailer.assert_called_once()

    def test_email_still_sent_when_sweep_delivered_first(self, cache, stamp, mailer):
        tasks.deliver_notification(PAYLOAD)
        result = tasks.deliver_notification(MAIL_PAYLOAD)

        assert result["status"] == "duplicate"
        mailer.assert_called_once()

    def test_failed_queueing_releases_email_claim(self, cache, stamp, mailer):
        mailer.side_effect = [ConnectionError("broker down"), None]

        _run_retrying(MAIL_PAYLOAD)
        assert not cache.exists("notification:emailed:41")

        tasks.deliver_notification(MAIL_PAYLOAD)
        assert mailer.call_count == 2
        assert cache.exists("notification:emailed:41")


class TestRedeliverPending:
    def test_republishes_each_pending_row(self):
        pending = [{**PAYLOAD, "notification_id": n} for n in (1, 2)]
        with patch.object(tasks, "_pending_payloads", new=AsyncMock(return_value=pending)), \
                patch.object(tasks.deliver_notification, "apply_async") as apply_async:
            result = tasks.redeliver_pending(limit=10)

        assert result == {"status": "queued", "total": 2}
        assert apply_async.call_count == 2
        apply_async.assert_any_call(kwargs={"payload": pending[0]}, queue="notifications")

    def test_skips_rows_inside_retry_window(self):
        frozen = tasks.now()
        with patch.object(tasks, "now", return_value=frozen), \
                patch.object(tasks, "_pending_payloads", new=AsyncMock(return_value=[])) as pending:
            tasks.redeliver_pending(limit=10)

        limit, created_before = pending.await_args.args
        assert limit == 10
        assert created_before == frozen - tasks.retry_window()
        assert tasks.retry_window() >= timedelta(
            seconds=tasks.settings.notification_retry_countdown
            * tasks.settings.notification_max_retries
        )

    def test_nothing_pending(self):
        with patch.object(tasks, "_pending_payloads", new=AsyncMock(return_value=[])):
            assert tasks.redeliver_pending() == {"status": "queued", "total": 0}
