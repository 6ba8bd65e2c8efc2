from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import PRESENT_MARKS, AttendanceMark, RecordStatus
from ..core.exceptions import StaleVersionError, StoreConflictError, StoreReadError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_placeholders
from .model import (
    AttendanceEntry,
    AttendanceRecord,
    AttendanceTotals,
    RosterMark,
    SavedAttendance,
    SessionMeta,
)
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    attendance_id, class_id, class_name, session_date, session_number, session_id,
    total_students, present, absent, reserved, tutored, status, version,
    created_by, created_at, updated_at
"""

_ENTRY_COLUMNS = """
    entry_id, attendance_id, student_id, student_name, student_code,
    class_id, class_name, session_date, session_number, session_id,
    status, note, homework_completion, test_name, score, bonus_points, punctuality, created_at
"""


def _opt_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _record_from_row(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=str(r["attendance_id"]),
        class_id=str(r["class_id"]),
        class_name=r["class_name"],
        session_date=r["session_date"],
        session_number=r.get("session_number"),
        session_id=r.get("session_id"),
        totals=AttendanceTotals(
            total_students=int(r["total_students"]),
            present=int(r["present"]),
            absent=int(r["absent"]),
            reserved=int(r["reserved"]),
            tutored=int(r["tutored"]),
        ),
        status=RecordStatus(r["status"]),
        version=int(r["version"]),
        created_at=r["created_at"],
        updated_at=r["updated_at"],
        created_by=r.get("created_by"),
    )


def _entry_from_row(r: dict) -> AttendanceEntry:
    return AttendanceEntry(
        entry_id=str(r["entry_id"]),
        attendance_id=str(r["attendance_id"]),
        class_id=str(r["class_id"]),
        class_name=r["class_name"],
        session_date=r["session_date"],
        session_number=r.get("session_number"),
        session_id=r.get("session_id"),
        mark=RosterMark(
            student_id=str(r["student_id"]),
            student_name=r["student_name"],
            student_code=r["student_code"],
            status=AttendanceMark(r["status"]),
            note=r.get("note"),
            homework_completion=r.get("homework_completion"),
            test_name=r.get("test_name"),
            score=_opt_float(r.get("score")),
            bonus_points=_opt_float(r.get("bonus_points")),
            punctuality=r.get("punctuality"),
        ),
        created_at=r["created_at"],
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_by_class_and_date(self, *, class_id: str, session_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory, error_cls=StoreReadError) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM attendance_records WHERE class_id=%s AND session_date=%s",
                (class_id, session_date),
            )
            r = fetchone(cur)
            return _record_from_row(r) if r else None

    def get_by_id(self, attendance_id: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory, error_cls=StoreReadError) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM attendance_records WHERE attendance_id=%s",
                (attendance_id,),
            )
            r = fetchone(cur)
            return _record_from_row(r) if r else None

    def save_submission(
        self,
        *,
        class_id: str,
        class_name: str,
        session_date: date,
        meta: SessionMeta,
        totals: AttendanceTotals,
        entries: Sequence[RosterMark],
        now: datetime,
        expected_version: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> SavedAttendance:
        # Lookup, record upsert and entry replacement share one transaction.
        # Nothing is written until the lookup has succeeded.
        with db_cursor(self._conn_factory, connect_error_cls=StoreReadError) as (_, cur):
            try:
                cur.execute(
                    """
                    SELECT attendance_id, version
                    FROM attendance_records
                    WHERE class_id=%s AND session_date=%s
                    FOR UPDATE
                    """,
                    (class_id, session_date),
                )
                existing = fetchone(cur)
            except mysql.connector.Error as exc:
                if exc.errno == errorcode.ER_LOCK_DEADLOCK:
                    raise StoreConflictError(str(exc)) from exc
                raise StoreReadError(f"Lỗi kiểm tra điểm danh: {exc}") from exc

            current_version = int(existing["version"]) if existing else 0
            if expected_version is not None and int(expected_version) != current_version:
                raise StaleVersionError(
                    "Dữ liệu điểm danh đã bị thay đổi bởi người khác, vui lòng tải lại",
                    expected=int(expected_version),
                    actual=current_version,
                )

            new_id = uuid.uuid4().hex
            cur.execute(
                """
                INSERT INTO attendance_records(
                    attendance_id, class_id, class_name, session_date, session_number, session_id,
                    total_students, present, absent, reserved, tutored, status, version,
                    created_by, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    class_name=VALUES(class_name),
                    session_number=VALUES(session_number),
                    session_id=VALUES(session_id),
                    total_students=VALUES(total_students),
                    present=VALUES(present),
                    absent=VALUES(absent),
                    reserved=VALUES(reserved),
                    tutored=VALUES(tutored),
                    status=VALUES(status),
                    version=version+1,
                    created_by=COALESCE(created_by, VALUES(created_by)),
                    updated_at=VALUES(updated_at)
                """,
                (
                    new_id,
                    class_id,
                    class_name,
                    session_date,
                    meta.session_number,
                    meta.session_id,
                    totals.total_students,
                    totals.present,
                    totals.absent,
                    totals.reserved,
                    totals.tutored,
                    RecordStatus.RECORDED.value,
                    created_by,
                    now,
                    now,
                ),
            )

            # On the update path the generated id is discarded; read back the real one.
            cur.execute(
                "SELECT attendance_id, version FROM attendance_records WHERE class_id=%s AND session_date=%s",
                (class_id, session_date),
            )
            saved = fetchone(cur)
            attendance_id = str(saved["attendance_id"])

            cur.execute("DELETE FROM attendance_entries WHERE attendance_id=%s", (attendance_id,))
            if entries:
                cur.executemany(
                    f"""
                    INSERT INTO attendance_entries({_ENTRY_COLUMNS})
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    [
                        (
                            uuid.uuid4().hex,
                            attendance_id,
                            e.student_id,
                            e.student_name,
                            e.student_code,
                            class_id,
                            class_name,
                            session_date,
                            meta.session_number,
                            meta.session_id,
                            e.status.value,
                            e.note,
                            e.homework_completion,
                            e.test_name,
                            e.score,
                            e.bonus_points,
                            e.punctuality,
                            now,
                        )
                        for e in entries
                    ],
                )

            return SavedAttendance(
                attendance_id=attendance_id,
                version=int(saved["version"]),
                created=attendance_id == new_id,
            )

    def list_entries(self, attendance_id: str) -> Sequence[AttendanceEntry]:
        with db_cursor(self._conn_factory, error_cls=StoreReadError) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS}
                FROM attendance_entries
                WHERE attendance_id=%s
                ORDER BY student_code ASC
                """,
                (attendance_id,),
            )
            return [_entry_from_row(r) for r in fetchall(cur)]

    def list_records(
        self,
        *,
        class_id: Optional[str] = None,
        session_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[AttendanceRecord]:
        clauses: list[str] = []
        params: list[object] = []

        if class_id is not None:
            clauses.append("class_id=%s")
            params.append(class_id)
        if session_date is not None:
            clauses.append("session_date=%s")
            params.append(session_date)
        if start_date is not None:
            clauses.append("session_date>=%s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("session_date<=%s")
            params.append(end_date)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(int(limit))

        with db_cursor(self._conn_factory, error_cls=StoreReadError) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                {where}
                ORDER BY session_date DESC, class_name ASC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_record_from_row(r) for r in fetchall(cur)]

    def delete_record(self, attendance_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_entries WHERE attendance_id=%s", (attendance_id,))
            cur.execute("DELETE FROM attendance_records WHERE attendance_id=%s", (attendance_id,))
            return cur.rowcount > 0

    def count_present_entries(self, *, student_id: str, class_id: str) -> int:
        statuses = [m.value for m in PRESENT_MARKS]
        with db_cursor(self._conn_factory, error_cls=StoreReadError) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS attended
                FROM attendance_entries
                WHERE student_id=%s AND class_id=%s AND status IN ({in_placeholders(statuses)})
                """,
                (student_id, class_id, *statuses),
            )
            r = fetchone(cur)
            return int(r["attended"]) if r else 0

    def list_student_class_pairs(self) -> Sequence[tuple[str, str]]:
        with db_cursor(self._conn_factory, error_cls=StoreReadError) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT student_id, class_id
                FROM attendance_entries
                ORDER BY student_id ASC, class_id ASC
                """
            )
            return [(str(r["student_id"]), str(r["class_id"])) for r in fetchall(cur)]
