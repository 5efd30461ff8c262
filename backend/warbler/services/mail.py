"""Outgoing email delivery."""

from __future__ import annotations

import logging
from email.message import EmailMessage

import aiosmtplib

from warbler.config import Settings, get_settings
from warbler.monitoring.metrics import mail_delivery_failures_total

logger = logging.getLogger(__name__)


class MailDeliveryError(RuntimeError):
    """Raised when an email could not be handed to the SMTP relay."""


class MailService:
    """Sends account emails through SMTP, or logs them when no relay is configured."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def confirmation_link(self, token_body: str) -> str:
        return f"{self.settings.frontend_url.rstrip('/')}/confirm-email/{token_body}"

    async def send_confirmation(self, email: str, username: str, token_body: str) -> None:
        link = self.confirmation_link(token_body)
        message = EmailMessage()
        message["From"] = self.settings.mail_from
        message["To"] = email
        message["Subject"] = "Confirm your email"
        message.set_content(
            f"Hello, {username}!\n\n"
            f"Follow the link below to activate your account:\n{link}\n"
        )
        await self._deliver(message, kind="confirm_email")

    async def _deliver(self, message: EmailMessage, *, kind: str) -> None:
        if not self.settings.smtp_host:
            logger.info("SMTP is not configured; %s mail to %s:\n%s", kind, message["To"], message.get_content())
            return
        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.smtp_host,
                port=self.settings.smtp_port,
                username=self.settings.smtp_username,
                password=self.settings.smtp_password,
                start_tls=self.settings.smtp_start_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            mail_delivery_failures_total.inc(kind=kind)
            logger.error("Failed to deliver %s mail to %s: %s", kind, message["To"], exc)
            raise MailDeliveryError(f"Failed to send {kind} email") from exc
        logger.info("Sent %s mail to %s", kind, message["To"])


def get_mail_service() -> MailService:
    """FastAPI dependency returning the configured mail service."""

    return MailService()
