from __future__ import annotations

from enum import Enum


class AttendanceMark(str, Enum):
    """Trạng thái điểm danh của một học viên trong buổi học.

    PENDING chỉ tồn tại phía client (chưa điểm danh), không bao giờ được lưu.
    """

    PENDING = ""
    ON_TIME = "on-time"
    LATE = "late"
    ABSENT = "absent"
    RESERVED = "reserved"
    TUTORED = "tutored"

    @property
    def is_present(self) -> bool:
        return self in (AttendanceMark.ON_TIME, AttendanceMark.LATE)


PRESENT_MARKS = (AttendanceMark.ON_TIME, AttendanceMark.LATE)


class RecordStatus(str, Enum):
    """Trạng thái của bản ghi điểm danh (theo lớp + ngày)."""

    RECORDED = "recorded"
    NOT_RECORDED = "not-recorded"


class StudentStatus(str, Enum):
    """Trạng thái học phí của học viên."""

    ACTIVE = "active"
    DEBT = "debt"
    CONTRACT_DEBT = "contract-debt"
    RESERVED = "reserved"
    DROPPED = "dropped"
    TRIAL = "trial"
    EXPIRED_FEE = "expired-fee"


class TutoringStatus(str, Enum):
    """Trạng thái yêu cầu bồi bài."""

    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TutoringReason(str, Enum):
    ABSENCE = "absence"


class ClassSessionStatus(str, Enum):
    PLANNED = "planned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SubmissionState(str, Enum):
    """Các bước xử lý một lần gửi điểm danh."""

    RECEIVED = "received"
    NORMALIZED = "normalized"
    UPSERTED = "upserted"
    SIDE_EFFECTS_DISPATCHED = "side-effects-dispatched"
    COMPLETE = "complete"
    FAILED = "failed"
