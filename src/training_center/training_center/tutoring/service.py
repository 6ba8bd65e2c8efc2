from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

from ..common.datetime_utils import format_vn_date, now_local
from ..common.locks import KeyedLocks
from ..core.enums import TutoringReason, TutoringStatus
from .model import NewTutoringRequest
from .repository import TutoringRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchOutcome:
    request_id: str
    created: bool


class RemedialWorkDispatcher:
    """Tạo yêu cầu bồi bài cho học viên vắng mặt.

    Mặc định mỗi lần phát hiện vắng tạo đúng một yêu cầu mới (kể cả khi gửi lại
    điểm danh cùng ngày). Bật ``dedupe`` để dùng lại yêu cầu đã có cho cùng
    (học viên, lớp, ngày vắng).
    """

    def __init__(
        self,
        tutoring: TutoringRepository,
        *,
        dedupe: bool = False,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._tutoring = tutoring
        self._dedupe = bool(dedupe)
        self._locks = locks or KeyedLocks()
        self._clock = clock

    @property
    def is_idempotent(self) -> bool:
        return self._dedupe

    def dispatch(
        self,
        *,
        student_id: str,
        student_name: str,
        class_id: str,
        class_name: str,
        absent_date: date,
    ) -> DispatchOutcome:
        with self._locks.hold(student_id):
            if self._dedupe:
                existing = self._tutoring.find_for_absence(
                    student_id=student_id, class_id=class_id, absent_date=absent_date
                )
                if existing:
                    logger.debug("Tutoring request %s already covers %s on %s", existing.request_id, student_id, absent_date)
                    return DispatchOutcome(request_id=existing.request_id, created=False)

            request_id = self._tutoring.create(
                NewTutoringRequest(
                    student_id=student_id,
                    student_name=student_name,
                    class_id=class_id,
                    class_name=class_name,
                    absent_date=absent_date,
                    reason=TutoringReason.ABSENCE,
                    status=TutoringStatus.UNSCHEDULED,
                    note=f"Vắng buổi học ngày {format_vn_date(absent_date)}",
                ),
                now=self._clock(),
            )
            logger.info("Tutoring request %s created for %s (absent %s, class %s)", request_id, student_id, absent_date, class_id)
            return DispatchOutcome(request_id=request_id, created=True)
