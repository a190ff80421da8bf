"""Outgoing mail — password reset messages over SMTP."""

import asyncio
import logging
import smtplib
from email.message import EmailMessage

from jobportal.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Mailer:
    """Sends portal emails. Delivery failures are logged, never raised."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def send_password_reset(self, email: str, username: str, reset_link: str) -> bool:
        message = EmailMessage()
        message["Subject"] = f"Reset your password - {self.settings.app_name}"
        message["From"] = self.settings.mail_from
        message["To"] = email
        message.set_content(
            f"Hi {username},\n\n"
            "We received a request to reset your password. Open the link below "
            f"within {self.settings.reset_token_ttl_minutes} minutes to choose a new one:\n\n"
            f"{reset_link}\n\n"
            "If you did not ask for this, you can ignore this email.\n"
        )
        return await self.send(message)

    async def send(self, message: EmailMessage) -> bool:
        if not self.settings.smtp_host:
            logger.warning("SMTP host not configured; skipping email to %s", message["To"])
            return False
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email to %s", message["To"])
            return False
        logger.info("Sent email to %s: %s", message["To"], message["Subject"])
        return True

    def _deliver(self, message: EmailMessage) -> None:
        s = self.settings
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=30) as smtp:
            if s.smtp_use_tls:
                smtp.starttls()
            if s.smtp_username:
                smtp.login(s.smtp_username, s.smtp_password)
            smtp.send_message(message)


def get_mailer() -> Mailer:
    return Mailer()
