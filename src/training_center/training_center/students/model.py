from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import StudentStatus


@dataclass(frozen=True)
class Student:
    """Thực thể miền (domain): phần thông tin học viên liên quan tới học phí.

    Lưu ý: attended_sessions luôn được tính lại từ điểm danh, không cộng dồn.
    """

    student_id: str
    full_name: str
    student_code: str
    status: StudentStatus
    registered_sessions: int = 0
    attended_sessions: int = 0
    remaining_sessions: int = 0
    debt_start_date: Optional[datetime] = None
    debt_sessions: int = 0
