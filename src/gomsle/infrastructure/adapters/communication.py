"""
Communication Adapters.

Concrete implementations of EmailSenderPort: a console sender for
development and an SMTP sender built on aiosmtplib.
"""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib

from gomsle.config import SmtpSettings
from gomsle.infrastructure.ports.communication import (
    EmailSenderPort,
    EmailMessage,
)

logger = logging.getLogger("gomsle.infrastructure.adapters.communication")


# ═══════════════════════════════════════════════════════════════
# CONSOLE EMAIL SENDER (Dev/Test)
# ═══════════════════════════════════════════════════════════════


class ConsoleEmailSender(EmailSenderPort):
    """
    Console implementation of EmailSenderPort.

    Logs the envelope and optionally prints the full email. Keeps a list of
    sent messages so development setups can pick up confirmation links.
    """

    def __init__(self, output_to_stdout: bool = False):
        self.output_to_stdout = output_to_stdout
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> None:
        output = [
            "--------------------------------------------------",
            "EMAIL SENT (Console)",
            f"To: {', '.join(message.to)}",
            f"Subject: {message.subject}",
            f"From: {message.from_email or '(default)'}",
        ]
        if message.cc:
            output.append(f"CC: {', '.join(message.cc)}")
        output.append("Body:")
        output.append(message.body_text)
        if message.body_html:
            output.append("Body (HTML available)")
        output.append("--------------------------------------------------")

        full_output = "\n".join(output)
        # Bodies carry one-time links; only the envelope goes to the log
        logger.info(f"Email sent (console) to {', '.join(message.to)}: {message.subject}")
        self.sent.append(message)

        if self.output_to_stdout:
            print(full_output)


# ═══════════════════════════════════════════════════════════════
# SMTP EMAIL SENDER
# ═══════════════════════════════════════════════════════════════


class AsyncSMTPEmailSender(EmailSenderPort):
    """SMTP implementation of EmailSenderPort using aiosmtplib."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 1025,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_ssl: bool = False,
        use_starttls: bool = False,
        timeout: int = 10,
        default_from: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_ssl = use_ssl
        self.use_starttls = use_starttls
        self.timeout = timeout
        self.default_from = default_from

    @classmethod
    def from_settings(
        cls, settings: Optional[SmtpSettings], default_from: Optional[str] = None
    ) -> "AsyncSMTPEmailSender":
        settings = settings or SmtpSettings()
        return cls(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            password=settings.password,
            use_ssl=settings.use_ssl,
            use_starttls=settings.use_starttls,
            timeout=settings.timeout,
            default_from=default_from,
        )

    def build_message(self, message: EmailMessage) -> MIMEMultipart:
        mime_msg = MIMEMultipart("alternative")
        mime_msg["Subject"] = message.subject
        mime_msg["From"] = (
            message.from_email or self.default_from or f"noreply@{self.host}"
        )
        mime_msg["To"] = ", ".join(message.to)
        if message.cc:
            mime_msg["Cc"] = ", ".join(message.cc)
        if message.reply_to:
            mime_msg["Reply-To"] = message.reply_to

        mime_msg.attach(MIMEText(message.body_text, "plain"))
        if message.body_html:
            mime_msg.attach(MIMEText(message.body_html, "html"))
        return mime_msg

    async def send(self, message: EmailMessage) -> None:
        mime_msg = self.build_message(message)
        recipients = message.to + message.cc

        try:
            # use_tls is implicit TLS (SMTPS, usually 465)
            smtp = aiosmtplib.SMTP(
                hostname=self.host,
                port=self.port,
                use_tls=self.use_ssl,
                start_tls=self.use_starttls and not self.use_ssl,
                timeout=self.timeout,
            )
            async with smtp:
                if self.user and self.password:
                    await smtp.login(self.user, self.password)
                await smtp.send_message(mime_msg, recipients=recipients)

            logger.info(f"Email sent successfully to {', '.join(message.to)}")

        except aiosmtplib.SMTPException as e:
            logger.error(f"Failed to send email to {', '.join(message.to)}: {e}")
            raise


__all__ = [
    "ConsoleEmailSender",
    "AsyncSMTPEmailSender",
]
