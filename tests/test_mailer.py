"""
tests/test_mailer.py -- Unit tests for core/mailer.py.

aiosmtplib.send is patched; no SMTP server is contacted. The contract under
test: send() reports failures through DeliveryResult and never raises for
delivery problems.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import aiosmtplib

from core.config import Settings
from core.mailer import EmailSender, OutgoingEmail

_EMAIL = OutgoingEmail(to="ada@x.io", subject="Password reset token", body="PUT http://x/reset/abc")


def _settings(**overrides) -> Settings:
    values = {"environment": "development", "secret_key": "k" * 48, "smtp_host": "smtp.test"}
    values.update(overrides)
    return Settings(**values)


class TestEmailSender:
    def test_unconfigured_host_reports_failure(self) -> None:
        with patch("core.mailer.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            result = asyncio.run(EmailSender(_settings(smtp_host="")).send(_EMAIL))
        assert result.ok is False
        assert result.error == "SMTP is not configured"
        mock_send.assert_not_called()

    def test_successful_send(self) -> None:
        with patch("core.mailer.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            result = asyncio.run(EmailSender(_settings(smtp_port=2525)).send(_EMAIL))
        assert result.ok is True
        assert result.error is None
        mock_send.assert_awaited_once()
        message = mock_send.call_args.args[0]
        assert message["To"] == "ada@x.io"
        assert message["Subject"] == "Password reset token"
        assert message["From"] == "DevCamper <noreply@devcamper.io>"
        assert mock_send.call_args.kwargs["hostname"] == "smtp.test"
        assert mock_send.call_args.kwargs["port"] == 2525

    def test_smtp_error_becomes_result(self) -> None:
        failure = aiosmtplib.SMTPException("mailbox unavailable")
        with patch("core.mailer.aiosmtplib.send", new_callable=AsyncMock, side_effect=failure):
            result = asyncio.run(EmailSender(_settings()).send(_EMAIL))
        assert result.ok is False
        assert "mailbox unavailable" in result.error

    def test_connection_error_becomes_result(self) -> None:
        with patch("core.mailer.aiosmtplib.send", new_callable=AsyncMock, side_effect=ConnectionRefusedError()):
            result = asyncio.run(EmailSender(_settings()).send(_EMAIL))
        assert result.ok is False

    def test_implicit_tls_disables_starttls(self) -> None:
        with patch("core.mailer.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            asyncio.run(EmailSender(_settings(smtp_use_tls=True, smtp_port=465)).send(_EMAIL))
        assert mock_send.call_args.kwargs["use_tls"] is True
        assert mock_send.call_args.kwargs["start_tls"] is False
