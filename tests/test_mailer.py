"""
Test SMTP Mail Transport

This module tests the real SMTP transport against a fake smtplib.SMTP:
- Accepted messages return their Message-ID
- Refused recipients and connection failures become DeliveryError
- A failed send is attempted exactly once
"""

import pytest

from fleetsheet.shared import mailer
from fleetsheet.shared.errors import DeliveryError
from fleetsheet.shared.mailer import MailAttachment, MailMessage, SMTPMailTransport


class FakeSMTP:
    """Stands in for smtplib.SMTP and records every connection."""

    connections = []
    refused = {}
    connect_error = None

    def __init__(self, host, port, timeout=None):
        FakeSMTP.connections.append((host, port))
        if FakeSMTP.connect_error:
            raise FakeSMTP.connect_error
        self.sent = []

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def send_message(self, msg):
        self.sent.append(msg)
        return dict(FakeSMTP.refused)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.connections = []
    FakeSMTP.refused = {}
    FakeSMTP.connect_error = None
    monkeypatch.setattr(mailer.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def report_message():
    return MailMessage(
        to="boss@example.com",
        subject="Vehicle Review Report",
        body="Attached",
        attachments=[MailAttachment("review_r1.pdf", b"%PDF-1.4", "application/pdf")],
    )


def transport():
    return SMTPMailTransport(host="smtp.test", port=25, username="", password="", use_tls=False)


@pytest.mark.asyncio
async def test_accepted_message_returns_message_id(fake_smtp):
    message_id = await transport().send(report_message())

    assert message_id.startswith("<") and message_id.endswith(">")
    assert fake_smtp.connections == [("smtp.test", 25)]


@pytest.mark.asyncio
async def test_refused_recipient_is_delivery_error(fake_smtp):
    """Test a recipient refused by the server is reported once, not retried"""
    fake_smtp.refused = {"boss@example.com": (550, b"mailbox unavailable")}

    with pytest.raises(DeliveryError) as exc_info:
        await transport().send(report_message())

    assert exc_info.value.status_code == 502
    assert "boss@example.com" in exc_info.value.message
    assert len(fake_smtp.connections) == 1


@pytest.mark.asyncio
async def test_connection_failure_is_delivery_error(fake_smtp):
    fake_smtp.connect_error = ConnectionRefusedError(111, "Connection refused")

    with pytest.raises(DeliveryError, match="Connection refused"):
        await transport().send(report_message())

    assert len(fake_smtp.connections) == 1
