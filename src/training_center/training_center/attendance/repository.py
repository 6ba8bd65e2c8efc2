from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceEntry, AttendanceRecord, AttendanceTotals, RosterMark, SavedAttendance, SessionMeta


class AttendanceRepository(Protocol):
    """Giao diện repository cho điểm danh (bản ghi + chi tiết).

    Lưu ý (DIP): tầng service phụ thuộc vào interface này, không phụ thuộc trực tiếp DB cụ thể.
    """

    def find_by_class_and_date(self, *, class_id: str, session_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_id(self, attendance_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

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
        """Find-or-create the (class, date) record and replace its entries as one unit.

        Raises StoreReadError if the lookup fails, StoreWriteError if the write fails,
        StaleVersionError if ``expected_version`` does not match. Nothing is applied
        in any of those cases.
        """

        raise NotImplementedError

    def list_entries(self, attendance_id: str) -> Sequence[AttendanceEntry]:
        raise NotImplementedError

    def list_records(
        self,
        *,
        class_id: Optional[str] = None,
        session_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def delete_record(self, attendance_id: str) -> bool:
        """Admin-only: remove the record and every entry that belongs to it."""

        raise NotImplementedError

    def count_present_entries(self, *, student_id: str, class_id: str) -> int:
        raise NotImplementedError

    def list_student_class_pairs(self) -> Sequence[tuple[str, str]]:
        raise NotImplementedError
