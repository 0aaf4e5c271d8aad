from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import User
from .repository import UserRepository


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_user(row: dict) -> User:
        return User(
            user_id=str(row["user_id"]),
            full_name=row["full_name"],
            email=row["email"],
            is_active=bool(row.get("is_active", True)),
        )

    def get_by_id(self, user_id: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id, full_name, email, is_active FROM users WHERE user_id=%s",
                (str(user_id),),
            )
            row = fetchone(cur)
            return self._to_user(row) if row else None
