"""SMTP email sender."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from telemetry_alerts.core.models import EmailMessage

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """EmailSenderPort implementation using smtplib.

    The blocking SMTP conversation runs in a worker thread so the event loop
    is never blocked. Errors propagate to the caller.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._starttls = starttls
        self._timeout = timeout

    @staticmethod
    def build_mime(message: EmailMessage) -> MIMEMultipart:
        """Build the MIME document for an email message."""
        msg = MIMEMultipart()
        msg["From"] = message.source
        msg["To"] = ", ".join(message.destination_addresses)
        msg["Subject"] = message.subject
        msg.attach(MIMEText(message.body_text, "plain", "utf-8"))
        return msg

    def _send_blocking(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
            if self._starttls:
                server.starttls()
            if self._username and self._password:
                server.login(self._username, self._password)
            server.send_message(
                self.build_mime(message),
                from_addr=message.source,
                to_addrs=list(message.destination_addresses),
            )
        logger.info(
            "Email sent",
            extra={"recipients": len(message.destination_addresses)},
        )

    async def send_email(self, message: EmailMessage) -> None:
        """Send an email via SMTP."""
        await asyncio.to_thread(self._send_blocking, message)
