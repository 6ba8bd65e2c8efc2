from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import TutoringReason, TutoringStatus


@dataclass(frozen=True)
class TutoringRequest:
    """Yêu cầu bồi bài tự sinh khi học viên vắng buổi học."""

    request_id: str
    student_id: str
    student_name: str
    class_id: str
    class_name: str
    absent_date: date
    reason: TutoringReason
    status: TutoringStatus
    note: Optional[str]
    created_at: datetime
    updated_at: datetime
    scheduled_date: Optional[date] = None
    tutor: Optional[str] = None


@dataclass(frozen=True)
class NewTutoringRequest:
    student_id: str
    student_name: str
    class_id: str
    class_name: str
    absent_date: date
    reason: TutoringReason
    status: TutoringStatus
    note: Optional[str]
