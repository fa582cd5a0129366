"""Outbound email.

Learn: The reset flow only needs "send this text to this address", so it
depends on the NotificationGateway protocol. SmtpNotificationGateway
speaks plain SMTP with STARTTLS + login (Gmail app passwords work).
smtplib is blocking, so each send runs in a worker thread to keep the
event loop free. There are no retries: a failed send is reported to the
caller as NotificationError and the current flow step is aborted.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from functools import lru_cache
from typing import Optional, Protocol

import structlog

from passgate.config import settings
from passgate.errors import NotificationError

logger = structlog.get_logger()


class NotificationGateway(Protocol):
    async def send(self, recipient: str, subject: str, body: str) -> None:
        """Deliver a message. Raises NotificationError on failure."""
        ...


class SmtpNotificationGateway:
    """Sends plain-text mail through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        sender: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.use_tls = use_tls
        self.sender = sender or username
        self.timeout = timeout

    def build_message(self, recipient: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = recipient
        msg.set_content(body)
        return msg

    async def send(self, recipient: str, subject: str, body: str) -> None:
        msg = self.build_message(recipient, subject, body)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(
                "email.send_failed",
                host=self.host,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise NotificationError() from e
        logger.info("email.sent", subject=subject)

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self._password)
            server.send_message(msg)


@lru_cache
def get_notification_gateway() -> NotificationGateway:
    """FastAPI dependency — SMTP gateway configured from settings."""
    return SmtpNotificationGateway(
        settings.smtp_host,
        settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        sender=settings.mail_from or None,
        timeout=settings.smtp_timeout_seconds,
    )
