from __future__ import annotations

from typing import Callable, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import IssuedTokenRecord, TokenData
from .repository import ApprovalTokenRepository

_COLUMNS = """
    token_id, issuance_id, token, task_id, approver_id, source_module, source_id,
    action, issued_ts, template_name, is_used, outcome, used_at, created_at
"""


class MySQLApprovalTokenRepository(ApprovalTokenRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_record(r: dict) -> IssuedTokenRecord:
        return IssuedTokenRecord(
            token_id=r["token_id"],
            issuance_id=r["issuance_id"],
            token=r["token"],
            data=TokenData(
                task_id=int(r["task_id"]),
                approver_id=str(r["approver_id"]),
                source_module=r["source_module"],
                source_id=str(r["source_id"]),
                action=r["action"],
                timestamp=int(r["issued_ts"]),
                nonce=r["token_id"],
            ),
            template_name=r["template_name"],
            created_at=r["created_at"],
            is_used=bool(r["is_used"]),
            used_at=r.get("used_at"),
            outcome=r.get("outcome"),
        )

    def save_many(self, records: Sequence[IssuedTokenRecord]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            for rec in records:
                cur.execute(
                    """
                    INSERT INTO email_approval_tokens(
                        token_id, issuance_id, token, task_id, approver_id, source_module,
                        source_id, action, issued_ts, template_name, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        rec.token_id,
                        rec.issuance_id,
                        rec.token,
                        int(rec.data.task_id),
                        rec.data.approver_id,
                        rec.data.source_module,
                        rec.data.source_id,
                        rec.data.action,
                        int(rec.data.timestamp),
                        rec.template_name,
                        rec.created_at,
                    ),
                )

    def get(self, token_id: str) -> Optional[IssuedTokenRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM email_approval_tokens WHERE token_id=%s", (token_id,))
            r = fetchone(cur)
            return self._to_record(r) if r else None

    def list_by_issuance(self, issuance_id: str) -> Sequence[IssuedTokenRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM email_approval_tokens WHERE issuance_id=%s ORDER BY action",
                (issuance_id,),
            )
            return [self._to_record(r) for r in fetchall(cur)]

    def consume(
        self,
        *,
        token_id: str,
        issuance_id: str,
        outcome: str,
        apply: Callable[[], object],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # The row locks taken here are held until the decision below commits.
            cur.execute(
                """
                UPDATE email_approval_tokens
                SET is_used=1, used_at=UTC_TIMESTAMP()
                WHERE issuance_id=%s AND is_used=0
                """,
                (issuance_id,),
            )
            if cur.rowcount == 0:
                return False

            cur.execute(
                "UPDATE email_approval_tokens SET outcome=%s WHERE token_id=%s",
                (outcome, token_id),
            )
            apply()
            return True
