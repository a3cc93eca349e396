"""Outgoing email delivery."""

import logging
import smtplib
from email.mime.text import MIMEText

from app.config import Settings, get_settings
from app.errors import EmailDeliveryError

logger = logging.getLogger("roomie")


class EmailService:
    """Sends plain-text email over SMTP, or logs it in the console backend."""

    def __init__(self, settings: Settings) -> None:
        self.backend = settings.EMAIL_BACKEND
        self.sender = settings.EMAIL_FROM
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.timeout = settings.SMTP_TIMEOUT_SECONDS

    def send(self, to: str, subject: str, message: str) -> None:
        """Deliver a message. Raises EmailDeliveryError on failure."""
        if self.backend != "smtp":
            logger.info("EMAIL to=%s subject=%r\n%s", to, subject, message)
            return

        msg = MIMEText(message, "plain", "utf-8")
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_username:
                    server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            raise EmailDeliveryError() from e

        logger.info("Email sent to %s (%s)", to, subject)


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get singleton email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService(get_settings())
    return _email_service
