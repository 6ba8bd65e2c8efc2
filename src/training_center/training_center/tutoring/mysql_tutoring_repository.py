from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from ..core.enums import TutoringReason, TutoringStatus
from ..core.exceptions import StoreReadError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import NewTutoringRequest, TutoringRequest
from .repository import TutoringRepository

_COLUMNS = """
    request_id, student_id, student_name, class_id, class_name, absent_date,
    reason, status, note, scheduled_date, tutor, created_at, updated_at
"""


def _from_row(r: dict) -> TutoringRequest:
    return TutoringRequest(
        request_id=str(r["request_id"]),
        student_id=str(r["student_id"]),
        student_name=r["student_name"],
        class_id=str(r["class_id"]),
        class_name=r["class_name"],
        absent_date=r["absent_date"],
        reason=TutoringReason(r["reason"]),
        status=TutoringStatus(r["status"]),
        note=r.get("note"),
        created_at=r["created_at"],
        updated_at=r["updated_at"],
        scheduled_date=r.get("scheduled_date"),
        tutor=r.get("tutor"),
    )


class MySQLTutoringRepository(TutoringRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, request: NewTutoringRequest, *, now: datetime) -> str:
        request_id = uuid.uuid4().hex
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tutoring_requests(
                    request_id, student_id, student_name, class_id, class_name, absent_date,
                    reason, status, note, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    request_id,
                    request.student_id,
                    request.student_name,
                    request.class_id,
                    request.class_name,
                    request.absent_date,
                    request.reason.value,
                    request.status.value,
                    request.note,
                    now,
                    now,
                ),
            )
        return request_id

    def find_for_absence(self, *, student_id: str, class_id: str, absent_date: date) -> Optional[TutoringRequest]:
        with db_cursor(self._conn_factory, error_cls=StoreReadError) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM tutoring_requests
                WHERE student_id=%s AND class_id=%s AND absent_date=%s AND reason=%s
                ORDER BY created_at ASC
                LIMIT 1
                """,
                (student_id, class_id, absent_date, TutoringReason.ABSENCE.value),
            )
            r = fetchone(cur)
            return _from_row(r) if r else None
