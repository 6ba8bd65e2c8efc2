from __future__ import annotations

from types import SimpleNamespace

import pytest
from flask import Flask

from src.training_center.training_center.attendance.controller import register


@pytest.fixture
def client(build_service):
    app = Flask(__name__)
    app.json.ensure_ascii = False
    register(app, SimpleNamespace(attendance_service=build_service()))
    return app.test_client()


def _payload(**overrides):
    body = {
        "classId": "cls-1",
        "className": "IELTS A1",
        "date": "2026-03-02",
        "sessionNumber": 5,
        "roster": [
            {"studentId": "A", "studentName": "An", "status": "absent"},
            {"studentId": "B", "studentName": "Bình", "status": "on-time", "homeworkCompletion": 80},
            {"studentId": "C", "studentName": "Châu", "status": ""},
        ],
    }
    body.update(overrides)
    return body


def test_submit_creates_then_updates(client):
    created = client.post("/api/attendance", json=_payload())
    updated = client.post("/api/attendance", json=_payload())

    assert created.status_code == 201
    body = created.get_json()
    assert body["ok"] is True
    assert body["state"] == "complete"
    assert body["totals"]["present"] == 1
    assert body["totals"]["absent"] == 1
    assert body["warnings"] == []

    assert updated.status_code == 200
    assert updated.get_json()["attendanceId"] == body["attendanceId"]
    assert updated.get_json()["version"] == 2


def test_detail_lists_only_finalized_entries(client):
    attendance_id = client.post("/api/attendance", json=_payload()).get_json()["attendanceId"]

    resp = client.get(f"/api/attendance/{attendance_id}")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["record"]["date"] == "2026-03-02"
    assert body["record"]["sessionNumber"] == 5
    assert sorted(e["studentId"] for e in body["entries"]) == ["A", "B"]
    by_id = {e["studentId"]: e for e in body["entries"]}
    assert by_id["B"]["homeworkCompletion"] == 80


def test_list_and_delete(client):
    attendance_id = client.post("/api/attendance", json=_payload()).get_json()["attendanceId"]

    listed = client.get("/api/attendance?classId=cls-1").get_json()["records"]
    deleted = client.delete(f"/api/attendance/{attendance_id}")
    missing = client.get(f"/api/attendance/{attendance_id}")

    assert [r["id"] for r in listed] == [attendance_id]
    assert deleted.status_code == 200
    assert missing.status_code == 404
    assert missing.get_json()["ok"] is False


def test_follow_up_failures_are_returned_as_warnings(client, students_repo):
    students_repo.fail("B")

    resp = client.post("/api/attendance", json=_payload())

    assert resp.status_code == 201
    assert resp.get_json()["warnings"][0]["operation"] == "debt"
    assert resp.get_json()["warnings"][0]["studentId"] == "B"


@pytest.mark.parametrize(
    "body",
    [
        _payload(classId=""),
        _payload(date="2026/03/02"),
        _payload(roster=[]),
        _payload(roster="A"),
        _payload(roster=[{"studentId": "A", "status": "present"}]),
        _payload(roster=[{"studentId": "A", "status": "late"}, {"studentId": "A", "status": "absent"}]),
        _payload(classId="c" * 65),
        _payload(roster=[{"studentId": "A", "status": "late", "homeworkCompletion": 55.7}]),
        _payload(roster=[{"studentId": "A", "status": "late", "score": 1e6}]),
        _payload(roster=[{"studentId": "A", "status": "late", "note": "x" * 501}]),
    ],
)
def test_invalid_payload_is_400(client, body):
    resp = client.post("/api/attendance", json=body)

    assert resp.status_code == 400
    assert resp.get_json()["ok"] is False


def test_non_json_body_is_400(client):
    resp = client.post("/api/attendance", data="not json", content_type="text/plain")

    assert resp.status_code == 400


def test_stale_version_is_409(client):
    client.post("/api/attendance", json=_payload())

    resp = client.post("/api/attendance", json=_payload(expectedVersion=0))

    assert resp.status_code == 409
    assert resp.get_json()["expectedVersion"] == 0
    assert resp.get_json()["currentVersion"] == 1


def test_store_failure_is_503(client, attendance_repo):
    attendance_repo.fail_write = True

    resp = client.post("/api/attendance", json=_payload())

    assert resp.status_code == 503
    assert attendance_repo.records == {}


def test_recompute_endpoint(client, attendance_repo, students_repo):
    client.post("/api/attendance", json=_payload())

    resp = client.post("/api/students/B/recompute?classId=cls-1")
    missing = client.post("/api/students/nobody/recompute?classId=cls-1")
    no_class = client.post("/api/students/B/recompute")

    assert resp.get_json()["attendedSessions"] == 1
    assert resp.get_json()["status"] == "active"
    assert missing.status_code == 404
    assert no_class.status_code == 400
