from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import pytest

from src.training_center.training_center.attendance.model import (
    AttendanceEntry,
    AttendanceRecord,
    AttendanceTotals,
    RosterMark,
    SavedAttendance,
)
from src.training_center.training_center.attendance.service import AttendanceService
from src.training_center.training_center.common.locks import KeyedLocks
from src.training_center.training_center.core.enums import PRESENT_MARKS, RecordStatus, StudentStatus
from src.training_center.training_center.core.exceptions import (
    StaleVersionError,
    StoreConflictError,
    StoreReadError,
    StoreWriteError,
)
from src.training_center.training_center.students.debt_service import DebtRecalculationService
from src.training_center.training_center.students.model import Student
from src.training_center.training_center.tutoring.model import TutoringRequest
from src.training_center.training_center.tutoring.service import RemedialWorkDispatcher


class InMemoryAttendance:
    """Records + entries with the same all-or-nothing replacement as the MySQL repo."""

    def __init__(self):
        self._lock = threading.Lock()
        self.records: dict[str, AttendanceRecord] = {}
        self.entries: dict[str, list[AttendanceEntry]] = {}
        self.fail_lookup = False
        self.fail_write = False
        self.conflicts = 0
        self.save_calls = 0

    def find_by_class_and_date(self, *, class_id, session_date):
        if self.fail_lookup:
            raise StoreReadError("lookup unavailable")
        for r in self.records.values():
            if r.class_id == class_id and r.session_date == session_date:
                return r
        return None

    def get_by_id(self, attendance_id):
        return self.records.get(attendance_id)

    def save_submission(
        self,
        *,
        class_id,
        class_name,
        session_date,
        meta,
        totals,
        entries,
        now,
        expected_version=None,
        created_by=None,
    ):
        with self._lock:
            self.save_calls += 1
            existing = self.find_by_class_and_date(class_id=class_id, session_date=session_date)
            current = existing.version if existing else 0
            if expected_version is not None and expected_version != current:
                raise StaleVersionError("stale", expected=expected_version, actual=current)
            if self.conflicts > 0:
                self.conflicts -= 1
                raise StoreConflictError("Deadlock found when trying to get lock")
            if self.fail_write:
                raise StoreWriteError("batch rejected")

            attendance_id = existing.attendance_id if existing else uuid.uuid4().hex
            record = AttendanceRecord(
                attendance_id=attendance_id,
                class_id=class_id,
                class_name=class_name,
                session_date=session_date,
                session_number=meta.session_number,
                session_id=meta.session_id,
                totals=totals,
                status=RecordStatus.RECORDED,
                version=current + 1,
                created_at=existing.created_at if existing else now,
                updated_at=now,
                created_by=(existing.created_by if existing else None) or created_by,
            )
            self.records[attendance_id] = record
            self.entries[attendance_id] = [
                AttendanceEntry(
                    entry_id=uuid.uuid4().hex,
                    attendance_id=attendance_id,
                    class_id=class_id,
                    class_name=class_name,
                    session_date=session_date,
                    session_number=meta.session_number,
                    session_id=meta.session_id,
                    mark=e,
                    created_at=now,
                )
                for e in entries
            ]
            return SavedAttendance(attendance_id=attendance_id, version=record.version, created=existing is None)

    def list_entries(self, attendance_id):
        return list(self.entries.get(attendance_id, []))

    def list_records(self, *, class_id=None, session_date=None, start_date=None, end_date=None, limit=200):
        items = [
            r
            for r in self.records.values()
            if (class_id is None or r.class_id == class_id)
            and (session_date is None or r.session_date == session_date)
            and (start_date is None or r.session_date >= start_date)
            and (end_date is None or r.session_date <= end_date)
        ]
        items.sort(key=lambda r: r.session_date, reverse=True)
        return items[:limit]

    def delete_record(self, attendance_id):
        with self._lock:
            self.entries.pop(attendance_id, None)
            return self.records.pop(attendance_id, None) is not None

    def count_present_entries(self, *, student_id, class_id):
        return sum(
            1
            for rows in self.entries.values()
            for e in rows
            if e.class_id == class_id and e.mark.student_id == student_id and e.mark.status in PRESENT_MARKS
        )

    def list_student_class_pairs(self):
        return sorted({(e.mark.student_id, e.class_id) for rows in self.entries.values() for e in rows})

    def add_history(self, *, student_id: str, class_id: str, marks, start_day: int = 1):
        """Seed past sessions directly (one record per day)."""

        for offset, status in enumerate(marks):
            day = date(2026, 1, start_day + offset)
            attendance_id = uuid.uuid4().hex
            now = datetime(2026, 1, start_day + offset, 18, 0)
            self.records[attendance_id] = AttendanceRecord(
                attendance_id=attendance_id,
                class_id=class_id,
                class_name=class_id.upper(),
                session_date=day,
                session_number=None,
                session_id=None,
                totals=AttendanceTotals(),
                status=RecordStatus.RECORDED,
                version=1,
                created_at=now,
                updated_at=now,
            )
            self.entries[attendance_id] = [
                AttendanceEntry(
                    entry_id=uuid.uuid4().hex,
                    attendance_id=attendance_id,
                    class_id=class_id,
                    class_name=class_id.upper(),
                    session_date=day,
                    session_number=None,
                    session_id=None,
                    mark=RosterMark(student_id=student_id, student_name=student_id, student_code=student_id, status=status),
                    created_at=now,
                )
            ]


class InMemoryStudents:
    def __init__(self, *students: Student):
        self._lock = threading.Lock()
        self.by_id: dict[str, Student] = {s.student_id: s for s in students}
        self.failures: dict[str, int] = {}
        self.attended_writes: list[tuple[str, int]] = []

    def fail(self, student_id: str, times: int = 10**6) -> None:
        self.failures[student_id] = times

    def _maybe_fail(self, student_id: str) -> None:
        remaining = self.failures.get(student_id, 0)
        if remaining > 0:
            self.failures[student_id] = remaining - 1
            raise StoreWriteError(f"student {student_id} locked")

    def get_by_id(self, student_id) -> Optional[Student]:
        return self.by_id.get(student_id)

    def set_attended_sessions(self, student_id, *, attended_sessions):
        with self._lock:
            self._maybe_fail(student_id)
            self.attended_writes.append((student_id, attended_sessions))
            s = self.by_id.get(student_id)
            if not s:
                return False
            self.by_id[student_id] = replace(s, attended_sessions=attended_sessions)
            return True

    def mark_debt_if_active(self, student_id, *, debt_start_date, debt_sessions):
        with self._lock:
            s = self.by_id.get(student_id)
            if not s or s.status != StudentStatus.ACTIVE:
                return False
            self.by_id[student_id] = replace(
                s, status=StudentStatus.DEBT, debt_start_date=debt_start_date, debt_sessions=debt_sessions
            )
            return True


class InMemoryTutoring:
    def __init__(self):
        self._lock = threading.Lock()
        self.requests: list[TutoringRequest] = []
        self.fail_for: set[str] = set()

    def create(self, request, *, now):
        with self._lock:
            if request.student_id in self.fail_for:
                raise StoreWriteError("tutoring store unavailable")
            request_id = f"tut-{len(self.requests) + 1}"
            self.requests.append(
                TutoringRequest(
                    request_id=request_id,
                    student_id=request.student_id,
                    student_name=request.student_name,
                    class_id=request.class_id,
                    class_name=request.class_name,
                    absent_date=request.absent_date,
                    reason=request.reason,
                    status=request.status,
                    note=request.note,
                    created_at=now,
                    updated_at=now,
                )
            )
            return request_id

    def find_for_absence(self, *, student_id, class_id, absent_date):
        for r in self.requests:
            if r.student_id == student_id and r.class_id == class_id and r.absent_date == absent_date:
                return r
        return None


class InMemoryClassSessions:
    def __init__(self):
        self.completed: dict[str, str] = {}

    def mark_completed(self, session_id, *, attendance_id):
        changed = self.completed.get(session_id) != attendance_id
        self.completed[session_id] = attendance_id
        return changed


FIXED_NOW = datetime(2026, 3, 2, 19, 30, 0)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def students_repo() -> InMemoryStudents:
    return InMemoryStudents(
        Student(student_id="A", full_name="Nguyễn Văn An", student_code="HV001", status=StudentStatus.ACTIVE, registered_sessions=10),
        Student(student_id="B", full_name="Trần Thị Bình", student_code="HV002", status=StudentStatus.ACTIVE, registered_sessions=10),
        Student(student_id="C", full_name="Lê Minh Châu", student_code="HV003", status=StudentStatus.ACTIVE, registered_sessions=10),
    )


@pytest.fixture
def tutoring_repo() -> InMemoryTutoring:
    return InMemoryTutoring()


@pytest.fixture
def class_sessions_repo() -> InMemoryClassSessions:
    return InMemoryClassSessions()


@pytest.fixture
def build_service(attendance_repo, students_repo, tutoring_repo, class_sessions_repo):
    def _build(
        *, workers: int = 1, retries: int = 0, dedupe: bool = False, retry_delay: float = 0, sleep=lambda _: None
    ) -> AttendanceService:
        locks = KeyedLocks()
        debt = DebtRecalculationService(attendance_repo, students_repo, locks=locks, clock=lambda: FIXED_NOW)
        dispatcher = RemedialWorkDispatcher(tutoring_repo, dedupe=dedupe, locks=locks, clock=lambda: FIXED_NOW)
        return AttendanceService(
            attendance_repo,
            debt,
            dispatcher,
            class_sessions_repo,
            workers=workers,
            retries=retries,
            retry_delay=retry_delay,
            clock=lambda: FIXED_NOW,
            sleep=sleep,
        )

    return _build
