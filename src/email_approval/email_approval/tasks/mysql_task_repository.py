from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import TaskStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchone, load_json
from .model import ApprovalTask
from .repository import TaskRepository


class MySQLTaskRepository(TaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        title: str,
        source_module: str,
        source_id: str,
        assigned_to: str,
        actions: Sequence[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO approval_tasks(title, source_module, source_id, assigned_to, actions, status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    title,
                    source_module,
                    str(source_id),
                    str(assigned_to),
                    dump_json(list(actions)),
                    TaskStatus.PENDING.value,
                ),
            )
            return int(cur.lastrowid)

    def get(self, *, task_id: int) -> Optional[ApprovalTask]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT task_id, title, source_module, source_id, assigned_to, actions,
                       status, created_at, decided_by, decided_at, remarks
                FROM approval_tasks
                WHERE task_id=%s
                """,
                (int(task_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return ApprovalTask(
                task_id=int(r["task_id"]),
                title=r["title"],
                source_module=r["source_module"],
                source_id=str(r["source_id"]),
                assigned_to=str(r["assigned_to"]),
                actions=tuple(load_json(r["actions"]) or ()),
                status=TaskStatus(r["status"]),
                created_at=r["created_at"],
                decided_by=r.get("decided_by"),
                decided_at=r.get("decided_at"),
                remarks=r.get("remarks"),
            )

    def decide(
        self,
        *,
        task_id: int,
        status: TaskStatus,
        decided_by: str,
        remarks: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE approval_tasks
                SET status=%s, decided_by=%s, decided_at=UTC_TIMESTAMP(), remarks=%s
                WHERE task_id=%s AND status=%s
                """,
                (
                    status.value,
                    str(decided_by),
                    remarks,
                    int(task_id),
                    TaskStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0
