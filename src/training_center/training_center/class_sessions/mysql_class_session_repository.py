from __future__ import annotations

from ..core.enums import ClassSessionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .repository import ClassSessionRepository


class MySQLClassSessionRepository(ClassSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def mark_completed(self, session_id: str, *, attendance_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_sessions
                SET status=%s, attendance_id=%s
                WHERE session_id=%s AND status<>%s
                """,
                (
                    ClassSessionStatus.COMPLETED.value,
                    attendance_id,
                    session_id,
                    ClassSessionStatus.CANCELLED.value,
                ),
            )
            return cur.rowcount > 0
