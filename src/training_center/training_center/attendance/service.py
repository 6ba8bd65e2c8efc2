from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Mapping, Optional, Sequence, Union

from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..class_sessions.repository import ClassSessionRepository
from ..common.datetime_utils import now_local, require_iso_date
from ..common.validators import optional_text, require_non_empty
from ..core.constants import (
    CREATED_BY_MAX_LENGTH,
    DEFAULT_RECORD_LIST_LIMIT,
    DEFAULT_SIDE_EFFECT_RETRIES,
    DEFAULT_SIDE_EFFECT_RETRY_DELAY,
    DEFAULT_SIDE_EFFECT_WORKERS,
    ID_MAX_LENGTH,
    MAX_RETRY_DELAY_SECONDS,
    NAME_MAX_LENGTH,
)
from ..core.enums import SubmissionState
from ..core.exceptions import DomainError, NotFoundError, StoreConflictError, StoreError, ValidationError
from ..students.debt_service import DebtOutcome, DebtRecalculationService
from ..tutoring.service import DispatchOutcome, RemedialWorkDispatcher
from .model import AttendanceEntry, AttendanceRecord, AttendanceTotals, RosterMark, SessionMeta
from .normalizer import normalize_roster, roster_mark_from_dict
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

RosterInput = Union[RosterMark, Mapping]

OP_DEBT = "debt"
OP_TUTORING = "tutoring"
OP_SESSION = "session"


@dataclass(frozen=True)
class SideEffectFailure:
    """A follow-up step that failed after the attendance itself was saved."""

    operation: str
    student_id: Optional[str]
    message: str

    def as_dict(self) -> dict:
        return {"operation": self.operation, "studentId": self.student_id, "message": self.message}


@dataclass(frozen=True)
class SubmissionResult:
    attendance_id: str
    version: int
    created: bool
    state: SubmissionState
    totals: AttendanceTotals
    warnings: tuple[SideEffectFailure, ...] = ()
    debt_outcomes: tuple[DebtOutcome, ...] = ()
    tutoring: tuple[DispatchOutcome, ...] = ()
    states: tuple[SubmissionState, ...] = field(default=(), repr=False)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


@dataclass(frozen=True)
class _Task:
    operation: str
    student_id: Optional[str]
    run: Callable[[], object]
    retryable: bool


class AttendanceService:
    """Điểm danh theo lớp + ngày và các xử lý kéo theo.

    submit() đi qua các bước Received -> Normalized -> Upserted ->
    SideEffectsDispatched -> Complete. Lỗi ở bước xử lý kéo theo (tính nợ phí,
    tạo yêu cầu bồi bài, cập nhật buổi học) không làm hỏng bản ghi điểm danh;
    chúng được ghi log và trả về trong ``warnings``.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        debt: DebtRecalculationService,
        dispatcher: RemedialWorkDispatcher,
        class_sessions: ClassSessionRepository | None = None,
        *,
        workers: int = DEFAULT_SIDE_EFFECT_WORKERS,
        retries: int = DEFAULT_SIDE_EFFECT_RETRIES,
        retry_delay: float = DEFAULT_SIDE_EFFECT_RETRY_DELAY,
        clock: Callable[[], datetime] = now_local,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._attendance = attendance
        self._debt = debt
        self._dispatcher = dispatcher
        self._class_sessions = class_sessions
        self._workers = max(1, int(workers))
        self._retries = max(0, int(retries))
        self._retry_delay = float(retry_delay)
        self._clock = clock
        self._sleep = sleep

    # ------------------------------------------------------------------ submit

    def submit(
        self,
        *,
        class_id: str,
        class_name: str,
        session_date: Union[date, str],
        roster: Sequence[RosterInput],
        meta: SessionMeta | None = None,
        expected_version: Optional[int] = None,
        created_by: Optional[str] = None,
        now: datetime | None = None,
    ) -> SubmissionResult:
        states = [SubmissionState.RECEIVED]
        key = f"{class_id}@{session_date}"

        try:
            class_id = require_non_empty(class_id, "Mã lớp", max_length=ID_MAX_LENGTH)
            class_name = require_non_empty(class_name, "Tên lớp", max_length=NAME_MAX_LENGTH)
            session_date = require_iso_date(session_date, "Ngày điểm danh")
            meta = self._validate_meta(meta or SessionMeta())
            expected_version = self._validate_expected_version(expected_version)
            created_by = optional_text(created_by, "Người tạo", max_length=CREATED_BY_MAX_LENGTH)
            if not roster:
                raise ValidationError("Danh sách điểm danh trống")
            marks = [self._to_mark(m) for m in roster]

            normalized = normalize_roster(marks)
            states.append(SubmissionState.NORMALIZED)
            logger.debug(
                "Attendance %s normalized: %s of %s marks finalized",
                key,
                len(normalized.entries),
                len(marks),
            )

            now = now or self._clock()
            # A deadlocked save was rolled back as a whole, so it can be replayed.
            saved = self._retrying(
                attempts=self._retries + 1,
                retry_on=(StoreConflictError,),
            )(
                self._attendance.save_submission,
                class_id=class_id,
                class_name=class_name,
                session_date=session_date,
                meta=meta,
                totals=normalized.totals,
                entries=normalized.entries,
                now=now,
                expected_version=expected_version,
                created_by=created_by,
            )
        except DomainError as exc:
            states.append(SubmissionState.FAILED)
            logger.warning("Attendance %s failed at %s: %s", key, states[-2].value, exc)
            raise

        states.append(SubmissionState.UPSERTED)
        logger.info(
            "Attendance %s saved as %s (v%s, %s): present=%s absent=%s reserved=%s tutored=%s",
            key,
            saved.attendance_id,
            saved.version,
            "created" if saved.created else "updated",
            normalized.totals.present,
            normalized.totals.absent,
            normalized.totals.reserved,
            normalized.totals.tutored,
        )

        tasks = self._build_tasks(
            attendance_id=saved.attendance_id,
            class_id=class_id,
            class_name=class_name,
            session_date=session_date,
            meta=meta,
            present=normalized.present_entries,
            absent=normalized.absent_entries,
            now=now,
        )
        results, failures = self._run_tasks(tasks)
        states.append(SubmissionState.SIDE_EFFECTS_DISPATCHED)

        if failures:
            logger.warning("Attendance %s completed with %s follow-up failure(s)", key, len(failures))
        states.append(SubmissionState.COMPLETE)

        return SubmissionResult(
            attendance_id=saved.attendance_id,
            version=saved.version,
            created=saved.created,
            state=SubmissionState.COMPLETE,
            totals=normalized.totals,
            warnings=tuple(failures),
            debt_outcomes=tuple(r for r in results if isinstance(r, DebtOutcome)),
            tutoring=tuple(r for r in results if isinstance(r, DispatchOutcome)),
            states=tuple(states),
        )

    @staticmethod
    def _to_mark(item: RosterInput) -> RosterMark:
        if isinstance(item, RosterMark):
            return item
        if isinstance(item, Mapping):
            return roster_mark_from_dict(item)
        raise ValidationError("Dòng điểm danh không hợp lệ")

    @staticmethod
    def _validate_meta(meta: SessionMeta) -> SessionMeta:
        number = meta.session_number
        if number is not None:
            try:
                number = int(number)
            except (TypeError, ValueError):
                raise ValidationError("Số buổi học không hợp lệ")
            if number <= 0:
                raise ValidationError("Số buổi học phải lớn hơn 0")
        session_id = optional_text(meta.session_id, "Mã buổi học", max_length=ID_MAX_LENGTH)
        return SessionMeta(session_number=number, session_id=session_id)

    @staticmethod
    def _validate_expected_version(value) -> Optional[int]:
        if value is None or value == "":
            return None
        try:
            version = int(value)
        except (TypeError, ValueError):
            raise ValidationError("Phiên bản điểm danh không hợp lệ")
        if version < 0:
            raise ValidationError("Phiên bản điểm danh không hợp lệ")
        return version

    # ------------------------------------------------------------ side effects

    def _build_tasks(
        self,
        *,
        attendance_id: str,
        class_id: str,
        class_name: str,
        session_date: date,
        meta: SessionMeta,
        present: Sequence[RosterMark],
        absent: Sequence[RosterMark],
        now: datetime,
    ) -> list[_Task]:
        tasks: list[_Task] = []

        for mark in absent:
            tasks.append(
                _Task(
                    operation=OP_TUTORING,
                    student_id=mark.student_id,
                    run=lambda m=mark: self._dispatcher.dispatch(
                        student_id=m.student_id,
                        student_name=m.student_name,
                        class_id=class_id,
                        class_name=class_name,
                        absent_date=session_date,
                    ),
                    # An always-insert dispatch is not safe to replay.
                    retryable=self._dispatcher.is_idempotent,
                )
            )

        for mark in present:
            tasks.append(
                _Task(
                    operation=OP_DEBT,
                    student_id=mark.student_id,
                    run=lambda m=mark: self._debt.recompute(m.student_id, class_id, now=now),
                    retryable=True,
                )
            )

        if meta.session_id and self._class_sessions is not None:
            session_id = meta.session_id
            tasks.append(
                _Task(
                    operation=OP_SESSION,
                    student_id=None,
                    run=lambda: self._class_sessions.mark_completed(session_id, attendance_id=attendance_id),
                    retryable=True,
                )
            )

        return tasks

    def _run_tasks(self, tasks: Sequence[_Task]) -> tuple[list[object], list[SideEffectFailure]]:
        results: list[object] = []
        failures: list[SideEffectFailure] = []
        if not tasks:
            return results, failures

        if self._workers == 1 or len(tasks) == 1:
            outcomes = [self._run_one(task) for task in tasks]
        else:
            with ThreadPoolExecutor(max_workers=min(self._workers, len(tasks))) as executor:
                futures = [executor.submit(self._run_one, task) for task in tasks]
                outcomes = [future.result() for future in as_completed(futures)]

        for outcome in outcomes:
            if isinstance(outcome, SideEffectFailure):
                failures.append(outcome)
            else:
                results.append(outcome)

        failures.sort(key=lambda f: (f.operation, f.student_id or ""))
        return results, failures

    def _retrying(self, *, attempts: int, retry_on: tuple[type[BaseException], ...]) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(max(1, attempts)),
            wait=wait_exponential(multiplier=self._retry_delay, max=MAX_RETRY_DELAY_SECONDS),
            retry=retry_if_exception_type(retry_on),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )

    def _run_one(self, task: _Task):
        label = f"{task.operation} follow-up for {task.student_id or 'session'}"
        attempts = (self._retries + 1) if task.retryable else 1
        try:
            return self._retrying(attempts=attempts, retry_on=(StoreError,))(task.run)
        except Exception as exc:
            # Isolated per student: the saved attendance and the other students are unaffected.
            logger.exception("%s failed", label)
            return SideEffectFailure(operation=task.operation, student_id=task.student_id, message=str(exc))

    # ----------------------------------------------------------------- queries

    def get_record(self, attendance_id: str) -> tuple[AttendanceRecord, Sequence[AttendanceEntry]]:
        attendance_id = require_non_empty(attendance_id, "Mã điểm danh")
        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError("Không tìm thấy bản ghi điểm danh")
        return record, self._attendance.list_entries(attendance_id)

    def find_record(self, *, class_id: str, session_date: Union[date, str]) -> Optional[AttendanceRecord]:
        return self._attendance.find_by_class_and_date(
            class_id=require_non_empty(class_id, "Mã lớp"),
            session_date=require_iso_date(session_date, "Ngày điểm danh"),
        )

    def list_records(
        self,
        *,
        class_id: Optional[str] = None,
        session_date: Union[date, str, None] = None,
        start_date: Union[date, str, None] = None,
        end_date: Union[date, str, None] = None,
        limit: int = DEFAULT_RECORD_LIST_LIMIT,
    ) -> Sequence[AttendanceRecord]:
        start = require_iso_date(start_date, "Từ ngày") if start_date else None
        end = require_iso_date(end_date, "Đến ngày") if end_date else None
        if start and end and start > end:
            raise ValidationError("Khoảng ngày không hợp lệ")
        return self._attendance.list_records(
            class_id=optional_text(class_id),
            session_date=require_iso_date(session_date, "Ngày điểm danh") if session_date else None,
            start_date=start,
            end_date=end,
            limit=max(1, int(limit)),
        )

    def delete_record(self, attendance_id: str) -> None:
        attendance_id = require_non_empty(attendance_id, "Mã điểm danh")
        if not self._attendance.delete_record(attendance_id):
            raise NotFoundError("Không tìm thấy bản ghi điểm danh")
        logger.info("Attendance record %s deleted with its entries", attendance_id)

    def recompute_student(self, *, student_id: str, class_id: str) -> DebtOutcome:
        return self._debt.recompute(
            require_non_empty(student_id, "Mã học viên"),
            require_non_empty(class_id, "Mã lớp"),
        )
