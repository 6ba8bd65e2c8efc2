from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..core.exceptions import DomainError, NotFoundError, StaleVersionError, StoreError, ValidationError
from ..container import Container
from .model import AttendanceEntry, AttendanceRecord, SessionMeta

logger = logging.getLogger(__name__)


def _record_to_json(r: AttendanceRecord) -> dict:
    return {
        "id": r.attendance_id,
        "classId": r.class_id,
        "className": r.class_name,
        "date": r.session_date.strftime("%Y-%m-%d"),
        "sessionNumber": r.session_number,
        "sessionId": r.session_id,
        **r.totals.as_dict(),
        "status": r.status.value,
        "version": r.version,
        "createdBy": r.created_by,
        "createdAt": r.created_at.isoformat(),
        "updatedAt": r.updated_at.isoformat(),
    }


def _entry_to_json(e: AttendanceEntry) -> dict:
    m = e.mark
    return {
        "id": e.entry_id,
        "attendanceId": e.attendance_id,
        "studentId": m.student_id,
        "studentName": m.student_name,
        "studentCode": m.student_code,
        "status": m.status.value,
        "note": m.note,
        "homeworkCompletion": m.homework_completion,
        "testName": m.test_name,
        "score": m.score,
        "bonusPoints": m.bonus_points,
        "punctuality": m.punctuality,
    }


def _error(message: str, status: int, **extra):
    return jsonify({"ok": False, "message": message, **extra}), status


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.errorhandler(ValidationError)
    def _validation_error(e: ValidationError):
        return _error(str(e), 400)

    @app.errorhandler(NotFoundError)
    def _not_found(e: NotFoundError):
        return _error(str(e), 404)

    @app.errorhandler(StaleVersionError)
    def _stale(e: StaleVersionError):
        return _error(str(e), 409, expectedVersion=e.expected, currentVersion=e.actual)

    @app.errorhandler(StoreError)
    def _store_error(e: StoreError):
        logger.error("Store failure: %s", e)
        return _error("Lỗi hệ thống khi truy cập dữ liệu, vui lòng thử lại", 503)

    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        return _error(str(e), 400)

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_submit")
    def attendance_submit():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValidationError("Dữ liệu gửi lên phải là JSON")

        roster = payload.get("roster")
        if roster is not None and not isinstance(roster, list):
            raise ValidationError("roster phải là danh sách")

        result = service.submit(
            class_id=payload.get("classId"),
            class_name=payload.get("className"),
            session_date=payload.get("date"),
            roster=roster or [],
            meta=SessionMeta(
                session_number=payload.get("sessionNumber"),
                session_id=payload.get("sessionId"),
            ),
            expected_version=payload.get("expectedVersion"),
            created_by=payload.get("createdBy"),
        )
        return jsonify(
            {
                "ok": True,
                "attendanceId": result.attendance_id,
                "version": result.version,
                "created": result.created,
                "state": result.state.value,
                "totals": result.totals.as_dict(),
                "warnings": [w.as_dict() for w in result.warnings],
            }
        ), (201 if result.created else 200)

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_list")
    def attendance_list():
        records = service.list_records(
            class_id=request.args.get("classId") or None,
            session_date=request.args.get("date") or None,
            start_date=request.args.get("start") or None,
            end_date=request.args.get("end") or None,
        )
        return jsonify({"ok": True, "records": [_record_to_json(r) for r in records]})

    @app.route("/api/attendance/<attendance_id>", methods=["GET"], endpoint="attendance_detail")
    def attendance_detail(attendance_id: str):
        record, entries = service.get_record(attendance_id)
        return jsonify({"ok": True, "record": _record_to_json(record), "entries": [_entry_to_json(e) for e in entries]})

    @app.route("/api/attendance/<attendance_id>", methods=["DELETE"], endpoint="attendance_delete")
    def attendance_delete(attendance_id: str):
        service.delete_record(attendance_id)
        return jsonify({"ok": True})

    @app.route("/api/students/<student_id>/recompute", methods=["POST"], endpoint="student_recompute")
    def student_recompute(student_id: str):
        outcome = service.recompute_student(student_id=student_id, class_id=request.args.get("classId") or "")
        return jsonify(
            {
                "ok": True,
                "studentId": outcome.student_id,
                "classId": outcome.class_id,
                "attendedSessions": outcome.attended_sessions,
                "status": outcome.status.value,
                "transitioned": outcome.transitioned,
                "debtSessions": outcome.debt_sessions,
            }
        )
