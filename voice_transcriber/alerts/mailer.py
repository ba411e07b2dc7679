"""Operator alert email delivery.

EmailSender is the interface the alert throttle talks to; ResendEmailSender
delivers through the Resend API. Sending raises on failure: deciding whether
a failure matters is the caller's job.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import resend

logger = logging.getLogger(__name__)


class EmailSender(ABC):
    """Abstract base class for outbound email delivery."""

    @abstractmethod
    async def send(self, to: list[str], subject: str, body: str) -> None:
        """Deliver one message to every recipient.

        Raises:
            Exception: Any delivery failure.
        """


class ResendEmailSender(EmailSender):
    """Sends plain HTML alert emails through Resend.

    Args:
        api_key: Resend API key.
        from_email: Sender address, e.g. "Alerts <alerts@example.com>".
    """

    def __init__(self, api_key: str, from_email: str) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._from_email = from_email

    async def send(self, to: list[str], subject: str, body: str) -> None:
        params = {
            "from": self._from_email,
            "to": to,
            "subject": subject,
            "html": f"<p>{body}</p>",
        }
        resend.api_key = self._api_key
        # resend is a blocking client; keep it off the event loop.
        await asyncio.to_thread(resend.Emails.send, params)
        logger.info("Alert email '%s' sent to %d recipient(s)", subject, len(to))


class NullEmailSender(EmailSender):
    """Sender used when no email provider is configured; every send fails."""

    async def send(self, to: list[str], subject: str, body: str) -> None:
        logger.warning("No email provider configured; dropping alert '%s'", subject)
        raise RuntimeError("email delivery is not configured")
