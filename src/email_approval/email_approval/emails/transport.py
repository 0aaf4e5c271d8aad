from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Optional, Protocol

from ..core.enums import EmailStatus
from .model import OutgoingEmail, TransportResult

logger = logging.getLogger(__name__)


class EmailTransport(Protocol):
    """Outbound mail delivery.

    Implementations never raise for delivery problems: they report FAILED in the result.
    """

    def send(self, message: OutgoingEmail, *, timeout: float) -> TransportResult:
        raise NotImplementedError


@dataclass(frozen=True)
class SMTPSettings:
    host: str
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_ssl: bool = False
    use_starttls: bool = True
    from_email: str = "noreply@example.com"
    from_name: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.host)


class SMTPTransport(EmailTransport):
    def __init__(self, settings: SMTPSettings):
        self._settings = settings

    def _build_message(self, message: OutgoingEmail) -> EmailMessage:
        s = self._settings
        msg = EmailMessage()
        msg["From"] = formataddr((s.from_name, s.from_email)) if s.from_name else s.from_email
        msg["To"] = ", ".join(message.to)
        if message.cc:
            msg["Cc"] = ", ".join(message.cc)
        msg["Subject"] = message.subject
        msg["Message-ID"] = make_msgid(domain=s.from_email.rsplit("@", 1)[-1])

        msg.set_content(message.text_content or "This message requires an HTML-capable email client.")
        msg.add_alternative(message.html_content, subtype="html")

        for att in message.attachments:
            maintype, _, subtype = att.content_type.partition("/")
            msg.add_attachment(
                att.content,
                maintype=maintype or "application",
                subtype=subtype or "octet-stream",
                filename=att.filename,
            )
        return msg

    def _open(self, timeout: float) -> smtplib.SMTP:
        s = self._settings
        if s.use_ssl:
            return smtplib.SMTP_SSL(s.host, s.port, timeout=timeout, context=ssl.create_default_context())
        client = smtplib.SMTP(s.host, s.port, timeout=timeout)
        if s.use_starttls:
            client.starttls(context=ssl.create_default_context())
        return client

    def send(self, message: OutgoingEmail, *, timeout: float) -> TransportResult:
        if not self._settings.is_configured:
            return TransportResult(
                status=EmailStatus.FAILED,
                error_message="Email service is not configured. Please contact system administrator.",
            )

        recipients = list(message.to) + list(message.cc) + list(message.bcc)
        try:
            # header values with CR/LF raise ValueError
            msg = self._build_message(message)
            with self._open(timeout) as client:
                if self._settings.username:
                    client.login(self._settings.username, self._settings.password or "")
                client.send_message(msg, to_addrs=recipients)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            # socket timeouts are OSError subclasses
            logger.error("Failed to send email to %s: %s", ", ".join(message.to), e)
            return TransportResult(status=EmailStatus.FAILED, error_message=str(e) or type(e).__name__)

        logger.info("Email sent to %s (message id %s)", msg["To"], msg["Message-ID"])
        return TransportResult(status=EmailStatus.SENT, message_id=msg["Message-ID"])
