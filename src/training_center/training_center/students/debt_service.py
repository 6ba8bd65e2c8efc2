from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..common.locks import KeyedLocks
from ..core.enums import StudentStatus
from ..core.exceptions import NotFoundError
from .model import Student
from .repository import StudentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DebtOutcome:
    student_id: str
    class_id: str
    attended_sessions: int
    previous_status: StudentStatus
    status: StudentStatus
    transitioned: bool = False
    debt_sessions: int = 0


def debt_overage(student: Student, attended_sessions: int) -> Optional[int]:
    """Số buổi vượt quá gói đã đăng ký, hoặc None nếu không chuyển sang nợ phí.

    Chỉ học viên đang học (active) với gói > 0 và số buổi đã học vượt hẳn gói
    mới bị chuyển; registered_sessions == 0 nghĩa là chưa cấu hình gói.
    """

    if student.status != StudentStatus.ACTIVE:
        return None
    registered = int(student.registered_sessions or 0)
    if registered <= 0 or attended_sessions <= registered:
        return None
    return attended_sessions - registered


class DebtRecalculationService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        *,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._students = students
        self._locks = locks or KeyedLocks()
        self._clock = clock

    def recompute(self, student_id: str, class_id: str, *, now: datetime | None = None) -> DebtOutcome:
        now = now or self._clock()

        with self._locks.hold(student_id):
            student = self._students.get_by_id(student_id)
            if not student:
                raise NotFoundError(f"Không tìm thấy học viên {student_id}")

            attended = self._attendance.count_present_entries(student_id=student_id, class_id=class_id)
            self._students.set_attended_sessions(student_id, attended_sessions=attended)

            overage = debt_overage(student, attended)
            if overage is None:
                return DebtOutcome(
                    student_id=student_id,
                    class_id=class_id,
                    attended_sessions=attended,
                    previous_status=student.status,
                    status=student.status,
                )

            transitioned = self._students.mark_debt_if_active(
                student_id,
                debt_start_date=now,
                debt_sessions=overage,
            )
            if transitioned:
                logger.info(
                    "Student %s moved to debt (attended=%s, registered=%s, class=%s)",
                    student_id,
                    attended,
                    student.registered_sessions,
                    class_id,
                )
            else:
                # Status changed between read and write; the guard kept it untouched.
                logger.info("Student %s left active status concurrently; debt transition skipped", student_id)

            return DebtOutcome(
                student_id=student_id,
                class_id=class_id,
                attended_sessions=attended,
                previous_status=student.status,
                status=StudentStatus.DEBT if transitioned else student.status,
                transitioned=transitioned,
                debt_sessions=overage if transitioned else 0,
            )
