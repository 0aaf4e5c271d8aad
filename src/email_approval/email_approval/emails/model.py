from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from ..core.enums import EmailStatus


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class OutgoingEmail:
    """What the transport needs to deliver one message."""

    to: Tuple[str, ...]
    subject: str
    html_content: str
    text_content: Optional[str] = None
    cc: Tuple[str, ...] = ()
    bcc: Tuple[str, ...] = ()
    attachments: Tuple[EmailAttachment, ...] = ()


@dataclass(frozen=True)
class TransportResult:
    status: EmailStatus
    message_id: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class SaveSentEmailRequest:
    company_id: int
    module: str
    to: Tuple[str, ...]
    subject: str
    status: EmailStatus = EmailStatus.PENDING
    sent_by: Optional[str] = None
    module_context: Optional[str] = None
    cc: Tuple[str, ...] = ()
    bcc: Tuple[str, ...] = ()
    html_content: Optional[str] = None
    text_content: Optional[str] = None
    error_message: Optional[str] = None
    message_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class SentEmail:
    """Audit entry of one send attempt."""

    id: str
    company_id: int
    module: str
    to: Tuple[str, ...]
    subject: str
    status: EmailStatus
    sent_at: datetime
    created_at: datetime
    updated_at: datetime
    sent_by: Optional[str] = None
    module_context: Optional[str] = None
    cc: Tuple[str, ...] = ()
    bcc: Tuple[str, ...] = ()
    html_content: Optional[str] = None
    text_content: Optional[str] = None
    error_message: Optional[str] = None
    message_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "companyId": self.company_id,
            "sentBy": self.sent_by,
            "sentAt": self.sent_at.isoformat(),
            "module": self.module,
            "moduleContext": self.module_context,
            "to": list(self.to),
            "cc": list(self.cc) or None,
            "bcc": list(self.bcc) or None,
            "subject": self.subject,
            "htmlContent": self.html_content,
            "textContent": self.text_content,
            "status": self.status.value,
            "errorMessage": self.error_message,
            "messageId": self.message_id,
            "metadata": self.metadata,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class SentEmailFilters:
    module: Optional[str] = None
    status: Optional[EmailStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None
    page: int = 1
    limit: int = 20
    sort_by: str = "sent_at"
    sort_order: str = "desc"


@dataclass(frozen=True)
class SentEmailPage:
    emails: Tuple[SentEmail, ...]
    total: int
    page: int
    limit: int
    total_pages: int = 0

    def to_dict(self) -> dict:
        return {
            "emails": [e.to_dict() for e in self.emails],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages,
        }
