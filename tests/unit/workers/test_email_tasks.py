"""
Tests for email sending.

Tests:
- SMTP delivery and failure reporting
- Disabled mail short-circuits
- Notification mail rendering
- The Celery task retries on failure
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest
from celery.exceptions import Retry

from core.integrations.email import EmailService, render_notification_email
from workers.tasks import emails


@pytest.fixture
def smtp():
    with patch("core.integrations.email.smtplib.SMTP") as smtp_cls:
        yield smtp_cls.return_value.__enter__.return_value


class TestEmailService:
    def test_sends_via_smtp(self, smtp):
        service = EmailService(
            smtp_host="mail.acme-corp.com", smtp_user="bot", smtp_password="pw", enabled=True
        )

        assert service.send_email("a@acme-corp.com", "Hi", "Body", cc=["b@acme-corp.com"])

        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bot", "pw")
        sent = smtp.send_message.call_args.kwargs
        assert sent["to_addrs"] == ["a@acme-corp.com", "b@acme-corp.com"]

    def test_smtp_error_returns_false(self, smtp):
        smtp.send_message.side_effect = smtplib.SMTPException("relay denied")
        service = EmailService(smtp_host="mail.acme-corp.com", enabled=True)
        assert service.send_email("a@acme-corp.com", "Hi", "Body") is False

    def test_disabled_skips_smtp(self):
        with patch("core.integrations.email.smtplib.SMTP") as smtp_cls:
            assert EmailService(enabled=False).send_email("a@acme-corp.com", "Hi", "Body")
        smtp_cls.assert_not_called()


class TestRenderNotificationEmail:
    def test_escapes_and_links(self):
        mail = render_notification_email(
            {
                "title": "Interview Scheduled",
                "message": "Meet <b>Ada</b>",
                "related_entity_type": "interview",
                "related_entity_id": 12,
            }
        )
        assert mail["subject"] == "Interview Scheduled"
        assert mail["html"] is True
        assert "Meet &lt;b&gt;Ada&lt;/b&gt;" in mail["body"]
        assert "/interviews/12" in mail["body"]

    def test_no_link_without_entity(self):
        mail = render_notification_email({"title": "Hello", "message": "World"})
        assert "href" not in mail["body"]


class TestSendEmailTask:
    def test_success(self):
        service = MagicMock()
        service.send_email.return_value = True
        with patch.object(emails, "get_email_service", return_value=service):
            result = emails.send_email("a@acme-corp.com", "Hi", "Body", html=True)

        assert result == {"status": "sent", "to": "a@acme-corp.com"}
        service.send_email.assert_called_once_with(
            "a@acme-corp.com", "Hi", "Body", html=True, cc=None
        )

    def test_failure_retries(self):
        service = MagicMock()
        service.send_email.return_value = False
        with patch.object(emails, "get_email_service", return_value=service), \
                patch.object(emails.send_email, "retry", side_effect=Retry()) as retry:
            with pytest.raises(Retry):
                emails.send_email("a@acme-corp.com", "Hi", "Body")

        assert isinstance(retry.call_args.kwargs["exc"], emails.EmailDeliveryError)
