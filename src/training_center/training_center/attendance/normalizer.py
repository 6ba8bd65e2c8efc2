"""Roster normalization: finalized marks and derived counters.

Pure functions, no I/O. A roster may be submitted before every student is
marked; only finalized marks are persisted and counted.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from ..common.validators import optional_int_in_range, optional_number, optional_text, require_non_empty
from ..core.constants import (
    BONUS_POINTS_LIMIT,
    HOMEWORK_MAX,
    HOMEWORK_MIN,
    ID_MAX_LENGTH,
    NAME_MAX_LENGTH,
    NOTE_MAX_LENGTH,
    PUNCTUALITY_MAX_LENGTH,
    SCORE_MAX,
    SCORE_MIN,
    STUDENT_CODE_MAX_LENGTH,
)
from ..core.enums import AttendanceMark
from ..core.exceptions import ValidationError
from .model import AttendanceTotals, RosterMark


@dataclass(frozen=True)
class NormalizedRoster:
    entries: tuple[RosterMark, ...]
    totals: AttendanceTotals

    @property
    def present_entries(self) -> tuple[RosterMark, ...]:
        return tuple(e for e in self.entries if e.status.is_present)

    @property
    def absent_entries(self) -> tuple[RosterMark, ...]:
        return tuple(e for e in self.entries if e.status == AttendanceMark.ABSENT)


def parse_mark(value) -> AttendanceMark:
    if value is None:
        return AttendanceMark.PENDING
    if isinstance(value, AttendanceMark):
        return value
    try:
        return AttendanceMark(str(value).strip())
    except ValueError:
        raise ValidationError(f"Trạng thái điểm danh không hợp lệ: {value!r}")


def roster_mark_from_dict(data: Mapping) -> RosterMark:
    """Build a RosterMark from a camelCase payload row."""

    return RosterMark(
        student_id=require_non_empty(data.get("studentId"), "Mã học viên", max_length=ID_MAX_LENGTH),
        student_name=optional_text(data.get("studentName"), "Tên học viên", max_length=NAME_MAX_LENGTH) or "",
        student_code=optional_text(data.get("studentCode"), "Mã HV", max_length=STUDENT_CODE_MAX_LENGTH) or "",
        status=parse_mark(data.get("status")),
        note=optional_text(data.get("note"), "Ghi chú", max_length=NOTE_MAX_LENGTH),
        homework_completion=optional_int_in_range(
            data.get("homeworkCompletion"), "% BTVN", low=HOMEWORK_MIN, high=HOMEWORK_MAX
        ),
        test_name=optional_text(data.get("testName"), "Tên bài kiểm tra", max_length=NAME_MAX_LENGTH),
        score=optional_number(data.get("score"), "Điểm", low=SCORE_MIN, high=SCORE_MAX),
        bonus_points=optional_number(
            data.get("bonusPoints"), "Điểm thưởng", low=-BONUS_POINTS_LIMIT, high=BONUS_POINTS_LIMIT
        ),
        punctuality=optional_text(data.get("punctuality"), "Đúng giờ", max_length=PUNCTUALITY_MAX_LENGTH),
    )


def count_marks(entries: Iterable[RosterMark]) -> AttendanceTotals:
    counts = Counter(e.status for e in entries)
    present = counts[AttendanceMark.ON_TIME] + counts[AttendanceMark.LATE]
    absent = counts[AttendanceMark.ABSENT]
    reserved = counts[AttendanceMark.RESERVED]
    tutored = counts[AttendanceMark.TUTORED]
    return AttendanceTotals(
        total_students=present + absent + reserved + tutored,
        present=present,
        absent=absent,
        reserved=reserved,
        tutored=tutored,
    )


def normalize_roster(roster: Sequence[RosterMark]) -> NormalizedRoster:
    seen: set[str] = set()
    for mark in roster:
        if mark.student_id in seen:
            raise ValidationError(f"Học viên {mark.student_id} bị lặp trong danh sách điểm danh")
        seen.add(mark.student_id)
        hw = mark.homework_completion
        if hw is not None and not HOMEWORK_MIN <= hw <= HOMEWORK_MAX:
            raise ValidationError(f"% BTVN phải trong khoảng {HOMEWORK_MIN}-{HOMEWORK_MAX}")

    finalized = tuple(m for m in roster if m.is_finalized)
    return NormalizedRoster(entries=finalized, totals=count_marks(finalized))
