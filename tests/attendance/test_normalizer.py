import pytest

from src.training_center.training_center.attendance.model import RosterMark
from src.training_center.training_center.attendance.normalizer import (
    count_marks,
    normalize_roster,
    parse_mark,
    roster_mark_from_dict,
)
from src.training_center.training_center.core.enums import AttendanceMark
from src.training_center.training_center.core.exceptions import ValidationError


def _mark(student_id: str, status: AttendanceMark) -> RosterMark:
    return RosterMark(student_id=student_id, student_name=student_id, student_code=f"HV-{student_id}", status=status)


def test_pending_marks_are_dropped_and_not_counted():
    roster = [
        _mark("A", AttendanceMark.ABSENT),
        _mark("B", AttendanceMark.ON_TIME),
        _mark("C", AttendanceMark.PENDING),
    ]

    result = normalize_roster(roster)

    assert [e.student_id for e in result.entries] == ["A", "B"]
    assert result.totals.present == 1
    assert result.totals.absent == 1
    assert result.totals.reserved == 0
    assert result.totals.tutored == 0
    assert result.totals.total_students == 2


def test_present_counts_on_time_and_late_and_totals_add_up():
    roster = [
        _mark("1", AttendanceMark.ON_TIME),
        _mark("2", AttendanceMark.LATE),
        _mark("3", AttendanceMark.LATE),
        _mark("4", AttendanceMark.RESERVED),
        _mark("5", AttendanceMark.TUTORED),
        _mark("6", AttendanceMark.ABSENT),
    ]

    totals = normalize_roster(roster).totals

    assert totals.present == 3
    assert totals.present + totals.absent + totals.reserved + totals.tutored == len(roster)


def test_all_pending_roster_normalizes_to_empty_set():
    result = normalize_roster([_mark("A", AttendanceMark.PENDING)])

    assert result.entries == ()
    assert count_marks([]) == result.totals


def test_duplicate_student_is_rejected():
    with pytest.raises(ValidationError):
        normalize_roster([_mark("A", AttendanceMark.ON_TIME), _mark("A", AttendanceMark.ABSENT)])


def test_parse_mark_accepts_blank_and_none_as_pending():
    assert parse_mark("") is AttendanceMark.PENDING
    assert parse_mark(None) is AttendanceMark.PENDING
    assert parse_mark("late") is AttendanceMark.LATE


def test_parse_mark_rejects_unknown_status():
    with pytest.raises(ValidationError):
        parse_mark("present")


def test_roster_mark_from_payload_row():
    mark = roster_mark_from_dict(
        {
            "studentId": "stu-1",
            "studentName": "Nguyễn Văn An",
            "studentCode": "HV001",
            "status": "on-time",
            "note": "  ",
            "homeworkCompletion": "80",
            "testName": "Unit 1",
            "score": "8.5",
            "bonusPoints": 1,
            "punctuality": "onTime",
        }
    )

    assert mark.status is AttendanceMark.ON_TIME
    assert mark.note is None
    assert mark.homework_completion == 80
    assert mark.score == 8.5
    assert mark.bonus_points == 1.0


@pytest.mark.parametrize("value", [-1, 101, "abc"])
def test_homework_completion_must_be_percentage(value):
    with pytest.raises(ValidationError):
        roster_mark_from_dict({"studentId": "s", "status": "late", "homeworkCompletion": value})


@pytest.mark.parametrize("value", [55.7, "55.5", "nan", float("inf")])
def test_homework_completion_must_be_a_whole_finite_number(value):
    with pytest.raises(ValidationError):
        roster_mark_from_dict({"studentId": "s", "status": "late", "homeworkCompletion": value})


def test_homework_completion_accepts_integral_floats():
    mark = roster_mark_from_dict({"studentId": "s", "status": "late", "homeworkCompletion": 55.0})

    assert mark.homework_completion == 55


@pytest.mark.parametrize(
    "field,value",
    [
        ("score", "nan"),
        ("score", "inf"),
        ("score", "-Infinity"),
        ("score", 1000),
        ("score", -1),
        ("score", True),
        ("bonusPoints", "nan"),
        ("bonusPoints", 10000),
    ],
)
def test_scores_must_be_finite_and_fit_the_column(field, value):
    with pytest.raises(ValidationError):
        roster_mark_from_dict({"studentId": "s", "status": "on-time", field: value})


@pytest.mark.parametrize(
    "field,length",
    [
        ("studentId", 65),
        ("studentName", 151),
        ("studentCode", 33),
        ("note", 501),
        ("testName", 151),
        ("punctuality", 21),
    ],
)
def test_text_longer_than_its_column_is_rejected(field, length):
    row = {"studentId": "s", "status": "on-time", field: "x" * length}

    with pytest.raises(ValidationError):
        roster_mark_from_dict(row)


def test_text_at_column_width_is_accepted():
    mark = roster_mark_from_dict({"studentId": "s" * 64, "status": "absent", "note": "n" * 500, "score": 999.99})

    assert len(mark.note) == 500
    assert mark.score == 999.99
