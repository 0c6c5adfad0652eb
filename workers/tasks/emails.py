"""Email sending tasks."""

import logging
from typing import Optional, List

from celery import Task

from core.config import settings
from core.integrations.email import get_email_service
from workers.celery_app import celery_app

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """SMTP refused or could not be reached; the task retries."""


@celery_app.task(name="workers.tasks.emails.send_email", bind=True)
def send_email(
    self: Task,
    to: str,
    subject: str,
    body: str,
    html: bool = False,
    cc: Optional[List[str]] = None,
) -> dict:
    """Send email via configured email service.

    Args:
        to: Recipient email address
        subject: Email subject
        body: Email body
        html: Whether body is HTML
        cc: CC recipients

    Returns:
        Dictionary with send status
    """
    sent = get_email_service().send_email(to, subject, body, html=html, cc=cc)
    if not sent:
        logger.warning(f"Email to {to} failed (attempt {self.request.retries + 1})")
        raise self.retry(
            exc=EmailDeliveryError(f"Could not send '{subject}' to {to}"),
            countdown=settings.notification_retry_countdown,
            max_retries=settings.notification_max_retries,
        )

    return {"status": "sent", "to": to}
