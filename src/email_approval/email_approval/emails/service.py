from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_SEND_TIMEOUT_SECONDS, DEFAULT_STATS_DAYS, MAX_LIST_LIMIT
from ..core.enums import EmailModule, EmailStatus
from ..core.exceptions import NotFoundError, ValidationError
from .model import OutgoingEmail, SaveSentEmailRequest, SentEmail, SentEmailFilters, SentEmailPage, TransportResult
from .repository import SentEmailRepository
from .transport import EmailTransport

logger = logging.getLogger(__name__)


class SentEmailService:
    """Audit trail of outbound emails (save, list, detail, stats)."""

    def __init__(self, sent_emails: SentEmailRepository):
        self._sent_emails = sent_emails

    def save(self, data: SaveSentEmailRequest) -> SentEmail:
        if not data.to:
            raise ValidationError("At least one recipient is required")
        return self._sent_emails.create(data)

    def mark_delivery(
        self,
        record: SentEmail,
        *,
        status: EmailStatus,
        message_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> SentEmail:
        if status == EmailStatus.PENDING:
            raise ValidationError("Delivery status must be SENT or FAILED")
        if not self._sent_emails.update_status(
            email_id=record.id,
            status=status,
            message_id=message_id,
            error_message=error_message,
        ):
            raise ValidationError(f"Sent email {record.id} is no longer PENDING")
        return replace(record, status=status, message_id=message_id, error_message=error_message)

    def list_sent_emails(self, company_id: int, filters: SentEmailFilters) -> SentEmailPage:
        page = max(int(filters.page or 1), 1)
        limit = min(max(int(filters.limit or 1), 1), MAX_LIST_LIMIT)
        filters = replace(filters, page=page, limit=limit)

        emails, total = self._sent_emails.list(company_id=int(company_id), filters=filters)
        return SentEmailPage(
            emails=tuple(emails),
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        )

    def get_sent_email(self, email_id: str, company_id: int) -> SentEmail:
        email = self._sent_emails.get(email_id=email_id, company_id=int(company_id))
        if not email:
            raise NotFoundError("Sent email not found")
        return email

    def get_email_stats(
        self,
        company_id: int,
        *,
        days: int = DEFAULT_STATS_DAYS,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        today = today or now_utc().date()
        status_counts = self._sent_emails.count_by_status(company_id=int(company_id))

        modules: Dict[str, Dict[str, int]] = {}
        for module, status, count in self._sent_emails.count_by_module_status(company_id=int(company_id)):
            entry = modules.setdefault(module, {"total": 0, "successful": 0})
            entry["total"] += count
            if status == EmailStatus.SENT.value:
                entry["successful"] += count

        start = today - timedelta(days=days - 1)
        per_day = self._sent_emails.count_by_day(
            company_id=int(company_id),
            since=datetime.combine(start, datetime.min.time()),
        )
        recent = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            recent.append({"date": day.isoformat(), "count": per_day.get(day, 0)})

        return {
            "totalEmails": sum(status_counts.values()),
            "successfulEmails": status_counts.get(EmailStatus.SENT.value, 0),
            "failedEmails": status_counts.get(EmailStatus.FAILED.value, 0),
            "pendingEmails": status_counts.get(EmailStatus.PENDING.value, 0),
            "moduleStats": [
                {
                    "module": module,
                    "count": s["total"],
                    "successRate": (s["successful"] / s["total"]) * 100 if s["total"] else 0,
                }
                for module, s in sorted(modules.items())
            ],
            "recentActivity": recent,
        }


class EmailService:
    """Use case: deliver one email and keep its audit record in step.

    The record is saved as PENDING before the transport is called and then moved
    to SENT or FAILED; transport problems never raise from here.
    """

    def __init__(
        self,
        transport: EmailTransport,
        sent_emails: SentEmailService,
        *,
        company_id: int,
        sent_by: Optional[str] = None,
        timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
    ):
        self._transport = transport
        self._sent_emails = sent_emails
        self._company_id = int(company_id)
        self._sent_by = sent_by
        self._timeout = timeout

    def send(
        self,
        message: OutgoingEmail,
        *,
        module: str = EmailModule.SYSTEM.value,
        module_context: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SentEmail:
        record = self._sent_emails.save(
            SaveSentEmailRequest(
                company_id=self._company_id,
                sent_by=self._sent_by,
                module=module,
                module_context=module_context,
                to=tuple(message.to),
                cc=tuple(message.cc),
                bcc=tuple(message.bcc),
                subject=message.subject,
                html_content=message.html_content,
                text_content=message.text_content,
                status=EmailStatus.PENDING,
                metadata=metadata,
            )
        )

        logger.info("Sending email %s to %s", record.id, ", ".join(message.to))
        try:
            result = self._transport.send(message, timeout=self._timeout)
        except Exception as e:
            logger.exception("Transport raised while sending email %s", record.id)
            result = TransportResult(status=EmailStatus.FAILED, error_message=str(e) or type(e).__name__)

        return self._sent_emails.mark_delivery(
            record,
            status=result.status,
            message_id=result.message_id,
            error_message=result.error_message,
        )
