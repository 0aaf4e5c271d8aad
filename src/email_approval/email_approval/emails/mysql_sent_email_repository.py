from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Sequence, Tuple

from ..core.enums import EmailStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import SaveSentEmailRequest, SentEmail, SentEmailFilters
from .repository import SentEmailRepository

_COLUMNS = """
    id, company_id, sent_by, module, module_context, to_addresses, cc_addresses, bcc_addresses,
    subject, html_content, text_content, status, error_message, message_id, metadata,
    sent_at, created_at, updated_at
"""

_SORTABLE = {"sent_at", "created_at", "subject", "status", "module"}


class MySQLSentEmailRepository(SentEmailRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_entity(r: dict) -> SentEmail:
        return SentEmail(
            id=r["id"],
            company_id=int(r["company_id"]),
            sent_by=r.get("sent_by"),
            module=r["module"],
            module_context=r.get("module_context"),
            to=tuple(load_json(r["to_addresses"]) or ()),
            cc=tuple(load_json(r.get("cc_addresses")) or ()),
            bcc=tuple(load_json(r.get("bcc_addresses")) or ()),
            subject=r["subject"],
            html_content=r.get("html_content"),
            text_content=r.get("text_content"),
            status=EmailStatus(r["status"]),
            error_message=r.get("error_message"),
            message_id=r.get("message_id"),
            metadata=load_json(r.get("metadata")),
            sent_at=r["sent_at"],
            created_at=r["created_at"],
            updated_at=r["updated_at"],
        )

    def create(self, data: SaveSentEmailRequest) -> SentEmail:
        email_id = str(uuid.uuid4())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sent_emails(
                    id, company_id, sent_by, module, module_context,
                    to_addresses, cc_addresses, bcc_addresses,
                    subject, html_content, text_content,
                    status, error_message, message_id, metadata
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    email_id,
                    int(data.company_id),
                    data.sent_by,
                    data.module,
                    data.module_context,
                    dump_json(list(data.to)),
                    dump_json(list(data.cc)) if data.cc else None,
                    dump_json(list(data.bcc)) if data.bcc else None,
                    data.subject,
                    data.html_content,
                    data.text_content,
                    data.status.value,
                    data.error_message,
                    data.message_id,
                    dump_json(data.metadata),
                ),
            )
            cur.execute(f"SELECT {_COLUMNS} FROM sent_emails WHERE id=%s", (email_id,))
            return self._to_entity(fetchone(cur))

    def update_status(
        self,
        *,
        email_id: str,
        status: EmailStatus,
        message_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE sent_emails
                SET status=%s, message_id=%s, error_message=%s
                WHERE id=%s AND status=%s
                """,
                (status.value, message_id, error_message, email_id, EmailStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def get(self, *, email_id: str, company_id: Optional[int] = None) -> Optional[SentEmail]:
        sql = f"SELECT {_COLUMNS} FROM sent_emails WHERE id=%s"
        params: list[object] = [email_id]
        if company_id is not None:
            sql += " AND company_id=%s"
            params.append(int(company_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            r = fetchone(cur)
            return self._to_entity(r) if r else None

    def list(self, *, company_id: int, filters: SentEmailFilters) -> Tuple[Sequence[SentEmail], int]:
        clauses = ["company_id=%s"]
        params: list[object] = [int(company_id)]

        if filters.module:
            clauses.append("module=%s")
            params.append(filters.module)
        if filters.status is not None:
            clauses.append("status=%s")
            params.append(filters.status.value)
        if filters.date_from:
            clauses.append("sent_at >= %s")
            params.append(datetime.combine(filters.date_from, datetime.min.time()))
        if filters.date_to:
            clauses.append("sent_at < %s")
            params.append(datetime.combine(filters.date_to + timedelta(days=1), datetime.min.time()))
        if filters.search:
            clauses.append("(subject LIKE %s OR JSON_SEARCH(to_addresses, 'one', %s) IS NOT NULL)")
            like = f"%{filters.search}%"
            params.extend([like, like])

        where = " AND ".join(clauses)
        sort_by = filters.sort_by if filters.sort_by in _SORTABLE else "sent_at"
        sort_order = "ASC" if str(filters.sort_order).lower() == "asc" else "DESC"
        offset = (max(filters.page, 1) - 1) * filters.limit

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM sent_emails WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total", 0))

            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM sent_emails
                WHERE {where}
                ORDER BY {sort_by} {sort_order}
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(filters.limit), int(offset)]),
            )
            rows = fetchall(cur)
            return [self._to_entity(r) for r in rows], total

    def count_by_status(self, *, company_id: int) -> Dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT status, COUNT(*) AS n FROM sent_emails WHERE company_id=%s GROUP BY status",
                (int(company_id),),
            )
            return {r["status"]: int(r["n"]) for r in fetchall(cur)}

    def count_by_module_status(self, *, company_id: int) -> Sequence[Tuple[str, str, int]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT module, status, COUNT(*) AS n
                FROM sent_emails
                WHERE company_id=%s
                GROUP BY module, status
                """,
                (int(company_id),),
            )
            return [(r["module"], r["status"], int(r["n"])) for r in fetchall(cur)]

    def count_by_day(self, *, company_id: int, since: datetime) -> Dict[date, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DATE(sent_at) AS day, COUNT(*) AS n
                FROM sent_emails
                WHERE company_id=%s AND sent_at >= %s
                GROUP BY DATE(sent_at)
                """,
                (int(company_id), since),
            )
            return {r["day"]: int(r["n"]) for r in fetchall(cur)}
