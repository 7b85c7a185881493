"""
Mail Transport Module

This module sends outbound email with file attachments over SMTP.

Features:
- MIME message building
- Binary attachments
- STARTTLS and login
- Async sending via executor
- Delivery error reporting

Security:
- SMTP authentication
- TLS encryption
- Credentials from config

Dependencies:
- smtplib: SMTP client
- email.mime: Email formatting
- asyncio: Off-loop execution
- logging: Delivery tracking

Author: Fleetsheet Development Team
"""

import asyncio
import logging
import smtplib
from dataclasses import dataclass, field
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import List, Optional

from fleetsheet.shared.config import (
    FROM_EMAIL,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_SERVER,
    SMTP_TIMEOUT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
)
from fleetsheet.shared.errors import DeliveryError

logger = logging.getLogger(__name__)


@dataclass
class MailAttachment:
    filename: str
    content: bytes
    mime_type: str


@dataclass
class MailMessage:
    """
    Outbound message handed to a transport.

    Attributes:
        to (str): Recipient address
        subject (str): Subject line
        body (str): Plain text body
        attachments (List[MailAttachment]): Files to attach
        sender (str): From header, defaults to FROM_EMAIL
    """
    to: str
    subject: str
    body: str
    attachments: List[MailAttachment] = field(default_factory=list)
    sender: str = FROM_EMAIL


def build_mime_message(message: MailMessage) -> MIMEMultipart:
    """Build the MIME representation of a message, attachments included."""
    msg = MIMEMultipart()
    msg["From"] = message.sender
    msg["To"] = message.to
    msg["Subject"] = message.subject
    msg["Reply-To"] = message.sender
    msg["Message-ID"] = make_msgid(domain="fleetsheet")
    msg.attach(MIMEText(message.body, "plain"))

    for attachment in message.attachments:
        subtype = attachment.mime_type.split("/", 1)[-1]
        part = MIMEApplication(attachment.content, _subtype=subtype)
        part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
        msg.attach(part)
    return msg


class SMTPMailTransport:
    """
    SMTP transport that reports success once the server accepts the message.

    No retries are attempted here; a rejected or timed-out conversation
    raises DeliveryError to the caller.
    """

    def __init__(
        self,
        host: str = SMTP_SERVER,
        port: int = SMTP_PORT,
        username: Optional[str] = SMTP_USERNAME,
        password: Optional[str] = SMTP_PASSWORD,
        use_tls: bool = SMTP_USE_TLS,
        timeout: float = SMTP_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send_sync(self, msg: MIMEMultipart):
        """Synchronous SMTP conversation for use with run_in_executor."""
        logger.debug(f"Connecting to SMTP server {self.host}:{self.port}")
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            refused = server.send_message(msg)
        if refused:
            raise smtplib.SMTPRecipientsRefused(refused)

    async def send(self, message: MailMessage) -> str:
        """
        Send a message without blocking the event loop.

        Args:
            message: Message to deliver

        Returns:
            str: Message-ID of the accepted message

        Raises:
            DeliveryError: When the server rejects the message or the
                connection fails
        """
        msg = build_mime_message(message)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP Error sending to {message.to}: {e}")
            raise DeliveryError(f"Mail transport rejected message: {e}") from e

        logger.info(f"Message sent to {message.to}, Message-ID: {msg['Message-ID']}")
        return msg["Message-ID"]


def get_mail_transport() -> SMTPMailTransport:
    """FastAPI dependency returning the configured transport."""
    return SMTPMailTransport()
