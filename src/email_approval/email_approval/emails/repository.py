from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Optional, Protocol, Sequence, Tuple

from ..core.enums import EmailStatus
from .model import SaveSentEmailRequest, SentEmail, SentEmailFilters


class SentEmailRepository(Protocol):
    def create(self, data: SaveSentEmailRequest) -> SentEmail:
        raise NotImplementedError

    def update_status(
        self,
        *,
        email_id: str,
        status: EmailStatus,
        message_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        """PENDING -> SENT|FAILED only; False if the record is not PENDING."""

        raise NotImplementedError

    def get(self, *, email_id: str, company_id: Optional[int] = None) -> Optional[SentEmail]:
        raise NotImplementedError

    def list(self, *, company_id: int, filters: SentEmailFilters) -> Tuple[Sequence[SentEmail], int]:
        """Return one page of records plus the total count matching the filters."""

        raise NotImplementedError

    def count_by_status(self, *, company_id: int) -> Dict[str, int]:
        raise NotImplementedError

    def count_by_module_status(self, *, company_id: int) -> Sequence[Tuple[str, str, int]]:
        raise NotImplementedError

    def count_by_day(self, *, company_id: int, since: datetime) -> Dict[date, int]:
        raise NotImplementedError
