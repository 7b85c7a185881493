"""
Report Delivery Module

Turns a rendered report into a downloadable artifact or an email
attachment.

Features:
- Format parsing (pdf, excel)
- Filename and MIME type selection
- Recipient address and subject checks
- Download filename cleaning and Content-Disposition
- Email via the mail transport, no retries

Author: Fleetsheet Development Team
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from fleetsheet.shared.errors import ValidationError
from fleetsheet.shared.mailer import MailAttachment, MailMessage
from fleetsheet.shared.models import ReportFormat

from .renderer import ReportTable, render

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ReportFormat.PDF: "application/pdf",
    ReportFormat.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
EXTENSIONS = {
    ReportFormat.PDF: "pdf",
    ReportFormat.EXCEL: "xlsx",
}

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Characters never allowed in a download filename
FILENAME_FORBIDDEN = set('"\\/')


@dataclass(frozen=True)
class ReportArtifact:
    content: bytes
    filename: str
    mime_type: str


def parse_format(value) -> ReportFormat:
    """
    Resolve a requested format.

    Raises:
        ValidationError: Anything other than pdf or excel
    """
    if isinstance(value, ReportFormat):
        return value
    try:
        return ReportFormat(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError("unsupported format")


def validate_recipient(address: Optional[str]) -> str:
    address = (address or "").strip()
    if not EMAIL_PATTERN.match(address):
        raise ValidationError("invalid recipient email address")
    return address


def clean_filename(filename: Optional[str]) -> str:
    """Drop quotes, slashes and control characters from a requested name."""
    return "".join(
        ch for ch in (filename or "")
        if ch not in FILENAME_FORBIDDEN and not unicodedata.category(ch).startswith("C")
    ).strip()


def content_disposition(filename: str) -> str:
    """
    Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name.

    Notes:
        - Starlette encodes headers as latin-1, so the plain ``filename``
          parameter only ever carries ASCII
    """
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = clean_filename(fallback)
    stem, _, extension = fallback.rpartition(".")
    if not stem.strip(" ._-"):
        fallback = f"report.{extension or 'bin'}"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def validate_subject(subject: str) -> str:
    if "\r" in subject or "\n" in subject:
        raise ValidationError("subject must be a single line")
    return subject


def build_artifact(
    table: ReportTable,
    report_format: ReportFormat,
    entity_kind: str,
    entity_id: str,
    filename: Optional[str] = None,
) -> ReportArtifact:
    """
    Render a table into a named artifact.

    The default filename is ``<entity_kind>_<entity_id>.<ext>``; an
    override without the right extension gets it appended.
    """
    extension = EXTENSIONS[report_format]
    name = clean_filename(filename) or f"{entity_kind}_{entity_id}"
    if not name.lower().endswith(f".{extension}"):
        name = f"{name}.{extension}"
    return ReportArtifact(
        content=render(table, report_format),
        filename=name,
        mime_type=MIME_TYPES[report_format],
    )


async def email_artifact(transport, artifact: ReportArtifact, recipient: str, subject: str, body: str) -> str:
    """
    Send an artifact as an attachment.

    Args:
        transport: Object with ``async send(MailMessage) -> str``
        artifact: Rendered report
        recipient: Destination address
        subject: Subject line
        body: Plain text body

    Returns:
        str: Message id reported by the transport

    Raises:
        ValidationError: Malformed recipient or multi-line subject
        DeliveryError: Transport rejected the message
    """
    recipient = validate_recipient(recipient)
    message = MailMessage(
        to=recipient,
        subject=validate_subject(subject),
        body=body,
        attachments=[MailAttachment(artifact.filename, artifact.content, artifact.mime_type)],
    )
    message_id = await transport.send(message)
    logger.info(f"Report {artifact.filename} emailed to {recipient}")
    return message_id
