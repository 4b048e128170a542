import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from app.core.settings import settings


logger = logging.getLogger(__name__)


@dataclass
class MailResult:
    success: bool
    error: Optional[str] = None


def send_email(to: str, subject: str, body: str) -> MailResult:
    """Send a plain-text email over SMTP. Delivery problems are reported, not raised."""
    if not to:
        return MailResult(success=False, error="No recipient address")
    if not settings.smtp_host:
        logger.info("Email delivery disabled, dropping message '%s' to %s", subject, to)
        return MailResult(success=False, error="Email delivery is not configured")

    message = EmailMessage()
    message["From"] = settings.email_from
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send email '%s' to %s: %s", subject, to, exc)
        return MailResult(success=False, error=str(exc))

    logger.info("Email '%s' sent to %s", subject, to)
    return MailResult(success=True)
