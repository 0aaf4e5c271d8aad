from __future__ import annotations

import smtplib

import pytest

from src.email_approval.email_approval.core.enums import EmailStatus
from src.email_approval.email_approval.emails.model import EmailAttachment, OutgoingEmail
from src.email_approval.email_approval.emails.transport import SMTPSettings, SMTPTransport


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None, **kwargs):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.started_tls = False
        self.logged_in = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, msg, to_addrs=None):
        self.sent.append((msg, to_addrs))


@pytest.fixture(autouse=True)
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def _message():
    return OutgoingEmail(
        to=("a@example.test",),
        cc=("c@example.test",),
        bcc=("b@example.test",),
        subject="Approval Required",
        html_content="<p>Approve?</p>",
        attachments=(EmailAttachment(filename="a.pdf", content=b"%PDF", content_type="application/pdf"),),
    )


def test_send_uses_starttls_login_and_timeout():
    transport = SMTPTransport(
        SMTPSettings(host="smtp.example.test", username="user", password="pw", from_email="erp@example.test")
    )

    result = transport.send(_message(), timeout=7)

    assert result.status == EmailStatus.SENT
    assert result.message_id and result.message_id.endswith("@example.test>")
    (client,) = FakeSMTP.instances
    assert client.timeout == 7
    assert client.started_tls is True
    assert client.logged_in == ("user", "pw")
    msg, recipients = client.sent[0]
    assert recipients == ["a@example.test", "c@example.test", "b@example.test"]
    assert msg["Subject"] == "Approval Required"
    assert "Bcc" not in msg
    assert [p.get_filename() for p in msg.iter_attachments()] == ["a.pdf"]


def test_smtp_error_becomes_failed_result(monkeypatch):
    def boom(self, msg, to_addrs=None):
        raise smtplib.SMTPRecipientsRefused({"a@example.test": (550, b"no such user")})

    monkeypatch.setattr(FakeSMTP, "send_message", boom)
    transport = SMTPTransport(SMTPSettings(host="smtp.example.test"))

    result = transport.send(_message(), timeout=5)

    assert result.status == EmailStatus.FAILED
    assert result.error_message


def test_timeout_becomes_failed_result(monkeypatch):
    def slow(self, *args, **kwargs):
        raise TimeoutError("timed out")

    monkeypatch.setattr(FakeSMTP, "__init__", slow)
    transport = SMTPTransport(SMTPSettings(host="smtp.example.test"))

    result = transport.send(_message(), timeout=1)

    assert result.status == EmailStatus.FAILED
    assert result.error_message == "timed out"


def test_unconfigured_transport_fails_without_connecting():
    result = SMTPTransport(SMTPSettings(host="")).send(_message(), timeout=5)

    assert result.status == EmailStatus.FAILED
    assert FakeSMTP.instances == []


def test_subject_with_line_break_fails_without_connecting():
    transport = SMTPTransport(SMTPSettings(host="smtp.example.test"))
    message = OutgoingEmail(
        to=("a@example.test",),
        subject="Leave Approval Required - Juan\nBcc: evil@example.test",
        html_content="<p>Approve?</p>",
    )

    result = transport.send(message, timeout=5)

    assert result.status == EmailStatus.FAILED
    assert result.error_message
    assert FakeSMTP.instances == []
