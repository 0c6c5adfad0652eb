"""Email integration utilities for sending emails."""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Any, Optional, List
import logging

from core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        enabled: Optional[bool] = None,
    ):
        """
        Initialize email service. Unset arguments fall back to settings.

        Args:
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            from_email: Default sender email
            from_name: Default sender name
            enabled: When False, messages are logged instead of sent
        """
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.smtp_from_email
        self.from_name = from_name or settings.smtp_from_name
        self.enabled = settings.email_enabled if enabled is None else enabled

    def send_email(
        self,
        to_email: str | List[str],
        subject: str,
        body: str,
        html: bool = False,
        cc: Optional[List[str]] = None,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to_email: Recipient email address(es)
            subject: Email subject
            body: Email body
            html: Whether body is HTML
            cc: CC recipients
            reply_to: Reply-to email address

        Returns:
            True if the email was sent (or skipped because sending is disabled)
        """
        recipients = list(to_email) if isinstance(to_email, list) else [to_email]

        if not self.enabled:
            logger.info(f"Email disabled; skipping '{subject}' to {recipients}")
            return True

        try:
            msg = MIMEMultipart()
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = ", ".join(recipients)
            msg["Subject"] = subject

            if cc:
                msg["Cc"] = ", ".join(cc)
                recipients.extend(cc)

            if reply_to:
                msg["Reply-To"] = reply_to

            msg.attach(MIMEText(body, "html" if html else "plain"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=recipients)

            logger.info(f"Email sent to {to_email}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return False


def render_notification_email(payload: dict[str, Any]) -> dict:
    """
    Build the mail for a notification delivery payload.

    Returns:
        Dict with ``subject``, ``body`` and ``html`` ready for ``send_email``
    """
    title = escape(payload["title"])
    message = escape(payload["message"])
    link = ""
    if payload.get("related_entity_type") and payload.get("related_entity_id"):
        url = (
            f"{settings.frontend_url}/{payload['related_entity_type']}s/"
            f"{payload['related_entity_id']}"
        )
        link = f'<p><a href="{url}">Open in {escape(settings.smtp_from_name)}</a></p>'

    return {
        "subject": payload["title"],
        "body": f"""
            <html>
            <body>
                <h2>{title}</h2>
                <p>{message}</p>
                {link}
                <p>Best regards,<br>The {escape(settings.smtp_from_name)} Team</p>
            </body>
            </html>
        """,
        "html": True,
    }


# Global email service instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create global email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
