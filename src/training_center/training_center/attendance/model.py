from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceMark, RecordStatus


@dataclass(frozen=True)
class SessionMeta:
    """Thông tin buổi học đi kèm lần điểm danh (tuỳ chọn)."""

    session_number: Optional[int] = None
    session_id: Optional[str] = None


@dataclass(frozen=True)
class RosterMark:
    """Một dòng trong danh sách điểm danh gửi lên (có thể chưa điểm danh)."""

    student_id: str
    student_name: str
    student_code: str
    status: AttendanceMark
    note: Optional[str] = None
    homework_completion: Optional[int] = None
    test_name: Optional[str] = None
    score: Optional[float] = None
    bonus_points: Optional[float] = None
    punctuality: Optional[str] = None

    @property
    def is_finalized(self) -> bool:
        return self.status != AttendanceMark.PENDING


@dataclass(frozen=True)
class AttendanceTotals:
    total_students: int = 0
    present: int = 0
    absent: int = 0
    reserved: int = 0
    tutored: int = 0

    def as_dict(self) -> dict:
        return {
            "totalStudents": self.total_students,
            "present": self.present,
            "absent": self.absent,
            "reserved": self.reserved,
            "tutored": self.tutored,
        }


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): Bản ghi điểm danh của một lớp trong một ngày."""

    attendance_id: str
    class_id: str
    class_name: str
    session_date: date
    session_number: Optional[int]
    session_id: Optional[str]
    totals: AttendanceTotals
    status: RecordStatus
    version: int
    created_at: datetime
    updated_at: datetime
    created_by: Optional[str] = None


@dataclass(frozen=True)
class AttendanceEntry:
    """Điểm danh chi tiết của một học viên, thuộc đúng một AttendanceRecord."""

    entry_id: str
    attendance_id: str
    class_id: str
    class_name: str
    session_date: date
    session_number: Optional[int]
    session_id: Optional[str]
    mark: RosterMark
    created_at: datetime


@dataclass(frozen=True)
class SavedAttendance:
    attendance_id: str
    version: int
    created: bool
