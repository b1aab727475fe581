"""
Tests for Communication Adapters.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import aiosmtplib

from gomsle.config import SmtpSettings
from gomsle.infrastructure.adapters.communication import (
    AsyncSMTPEmailSender,
    ConsoleEmailSender,
)
from gomsle.infrastructure.ports.communication import EmailMessage


def _message():
    return EmailMessage(
        to=["user@gomsle.com"],
        subject="Invitation",
        body_text="Join us: https://app/accept?token=t",
        body_html="<b>Join us</b>",
        cc=["cc@gomsle.com"],
    )


@pytest.mark.asyncio
async def test_email_console_send():
    sender = ConsoleEmailSender(output_to_stdout=True)

    with patch("builtins.print") as mock_print:
        await sender.send(_message())
        assert mock_print.called
        args = mock_print.call_args[0][0]
        assert "EMAIL SENT" in args
        assert "To: user@gomsle.com" in args
        assert "CC: cc@gomsle.com" in args
        assert "Body (HTML available)" in args

    assert sender.sent[0].subject == "Invitation"


@pytest.mark.asyncio
async def test_email_console_does_not_log_body(caplog):
    sender = ConsoleEmailSender()

    with caplog.at_level("INFO", logger="gomsle.infrastructure.adapters.communication"):
        await sender.send(_message())

    assert "user@gomsle.com" in caplog.text
    assert "token=t" not in caplog.text


def test_smtp_build_message():
    sender = AsyncSMTPEmailSender(default_from="noreply@gomsle.com")

    mime = sender.build_message(_message())

    assert mime["From"] == "noreply@gomsle.com"
    assert mime["To"] == "user@gomsle.com"
    assert mime["Cc"] == "cc@gomsle.com"
    assert len(mime.get_payload()) == 2


def test_smtp_from_settings():
    sender = AsyncSMTPEmailSender.from_settings(
        SmtpSettings(host="smtp.gomsle.com", port=465, use_ssl=True),
        default_from="noreply@gomsle.com",
    )

    assert sender.host == "smtp.gomsle.com"
    assert sender.port == 465
    assert sender.use_ssl is True
    assert sender.default_from == "noreply@gomsle.com"


@pytest.mark.asyncio
async def test_smtp_send():
    sender = AsyncSMTPEmailSender(
        host="smtp.gomsle.com", port=587, user="u", password="p", use_starttls=True
    )

    with patch(
        "gomsle.infrastructure.adapters.communication.aiosmtplib.SMTP"
    ) as smtp_cls:
        smtp = MagicMock()
        smtp.__aenter__ = AsyncMock(return_value=smtp)
        smtp.__aexit__ = AsyncMock(return_value=None)
        smtp.login = AsyncMock()
        smtp.send_message = AsyncMock()
        smtp_cls.return_value = smtp

        await sender.send(_message())

    smtp_cls.assert_called_once_with(
        hostname="smtp.gomsle.com",
        port=587,
        use_tls=False,
        start_tls=True,
        timeout=10,
    )
    smtp.login.assert_awaited_once_with("u", "p")
    _, kwargs = smtp.send_message.call_args
    assert kwargs["recipients"] == ["user@gomsle.com", "cc@gomsle.com"]


@pytest.mark.asyncio
async def test_smtp_send_failure_propagates():
    sender = AsyncSMTPEmailSender()

    with patch(
        "gomsle.infrastructure.adapters.communication.aiosmtplib.SMTP"
    ) as smtp_cls:
        smtp = MagicMock()
        smtp.__aenter__ = AsyncMock(return_value=smtp)
        smtp.__aexit__ = AsyncMock(return_value=None)
        smtp.send_message = AsyncMock(side_effect=aiosmtplib.SMTPException("down"))
        smtp_cls.return_value = smtp

        with pytest.raises(aiosmtplib.SMTPException):
            await sender.send(_message())
