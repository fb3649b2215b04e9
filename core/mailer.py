"""
mailer.py -- Outbound email delivery over SMTP.

The only external call the auth flow makes. send() never raises for delivery
problems: it returns a DeliveryResult, and the caller decides what a failure
means (forgot-password rolls back the reset token it just stored).

aiosmtplib keeps the SMTP conversation on the event loop, so a slow mail
server does not pin a worker thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from core.config import Settings

logger = logging.getLogger("devcamper.mailer")


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    body: str


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one send() call. error is None when ok is True."""

    ok: bool
    error: Optional[str] = None


class EmailSender:
    """SMTP sender configured from Settings.

    Usage:
        sender = EmailSender(settings)
        result = await sender.send(OutgoingEmail(to="a@b.io", subject="Hi", body="..."))
        if not result.ok:
            ...
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _build_message(self, email: OutgoingEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f"{self._settings.from_name} <{self._settings.from_email}>"
        message["To"] = email.to
        message["Subject"] = email.subject
        message.set_content(email.body)
        return message

    async def send(self, email: OutgoingEmail) -> DeliveryResult:
        settings = self._settings
        if not settings.smtp_host:
            logger.warning("SMTP_HOST is not configured -- cannot send '%s' to %s", email.subject, email.to)
            return DeliveryResult(ok=False, error="SMTP is not configured")
        try:
            await aiosmtplib.send(
                self._build_message(email),
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username or None,
                password=settings.smtp_password or None,
                use_tls=settings.smtp_use_tls,
                start_tls=settings.smtp_start_tls if not settings.smtp_use_tls else False,
                timeout=settings.smtp_timeout_seconds,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.warning("Email delivery to %s failed: %s", email.to, e)
            return DeliveryResult(ok=False, error=str(e))
        logger.info("Email '%s' sent to %s", email.subject, email.to)
        return DeliveryResult(ok=True)
