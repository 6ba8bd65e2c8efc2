from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import StudentStatus
from ..core.exceptions import StoreReadError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Student
from .repository import StudentRepository


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: str) -> Optional[Student]:
        with db_cursor(self._conn_factory, error_cls=StoreReadError) as (_, cur):
            cur.execute(
                """
                SELECT student_id, full_name, student_code, status, registered_sessions,
                       attended_sessions, remaining_sessions, debt_start_date, debt_sessions
                FROM students
                WHERE student_id=%s
                """,
                (student_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Student(
                student_id=str(r["student_id"]),
                full_name=r["full_name"],
                student_code=r["student_code"],
                status=StudentStatus(r["status"]),
                registered_sessions=int(r.get("registered_sessions") or 0),
                attended_sessions=int(r.get("attended_sessions") or 0),
                remaining_sessions=int(r.get("remaining_sessions") or 0),
                debt_start_date=r.get("debt_start_date"),
                debt_sessions=int(r.get("debt_sessions") or 0),
            )

    def set_attended_sessions(self, student_id: str, *, attended_sessions: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE students SET attended_sessions=%s WHERE student_id=%s",
                (int(attended_sessions), student_id),
            )
            # rowcount is 0 when the value did not change; existence is checked by the caller.
            return cur.rowcount > 0

    def mark_debt_if_active(
        self,
        student_id: str,
        *,
        debt_start_date: datetime,
        debt_sessions: int,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE students
                SET status=%s, debt_start_date=%s, debt_sessions=%s
                WHERE student_id=%s AND status=%s
                """,
                (
                    StudentStatus.DEBT.value,
                    debt_start_date,
                    int(debt_sessions),
                    student_id,
                    StudentStatus.ACTIVE.value,
                ),
            )
            return cur.rowcount > 0
