"""
Communication Ports.

Defines the protocol of the notification gateway used for invitation,
confirmation and password-reset emails.
"""

from dataclasses import dataclass, field
from typing import Protocol, List, Optional


# ═══════════════════════════════════════════════════════════════
# DATA TRANSFER OBJECTS
# ═══════════════════════════════════════════════════════════════


@dataclass
class EmailMessage:
    """Standard email message structure."""

    to: List[str]
    subject: str
    body_text: str
    body_html: Optional[str] = None
    from_email: Optional[str] = None
    reply_to: Optional[str] = None
    cc: List[str] = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════
# PORTS
# ═══════════════════════════════════════════════════════════════


class EmailSenderPort(Protocol):
    """
    Port for sending emails.

    Implementations: SMTP (aiosmtplib), Console (dev).

    ``send`` returns only once the gateway has accepted the message.
    """

    async def send(self, message: EmailMessage) -> None:
        """
        Send an email message.

        Args:
            message: EmailMessage object

        Raises:
            Exception: If sending fails
        """
        ...
