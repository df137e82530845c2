from __future__ import annotations

import json
import threading

import httpx
import pytest

from coaching_attendance.attendance.controller import WorkspaceRegistry
from coaching_attendance.container import build_container
from coaching_attendance.main import create_app

CLASS_ROW = {
    "id": "cls-1",
    "subject": "Physics",
    "topic": "Optics",
    "batchType": "JEE-2026",
    "date": "2026-02-11",
    "startTime": "09:00",
    "endTime": "10:00",
    "venue": "Room 4",
    "teacher": {"id": "t-1", "fullName": "Teacher One"},
    "totalStudents": 2,
    "attendanceMarked": False,
    "students": [
        {"id": "s1", "fullName": "Asha", "uid": "U1"},
        {"id": "s2", "fullName": "Bilal", "uid": "U2"},
    ],
}


class FakeAttendanceApi:
    def __init__(self):
        self.requests = []
        self.mark_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in ("/api/attendance/today", "/api/attendance/scheduled"):
            return httpx.Response(200, json={"classes": [CLASS_ROW]})
        if path == "/api/attendance/mark":
            if self.mark_status != 200:
                return httpx.Response(self.mark_status, json={"error": "Class schedule not found"})
            data = json.loads(request.content)["attendanceData"]
            absent = sum(1 for d in data if d["status"] == "ABSENT")
            return httpx.Response(
                200,
                json={
                    "summary": {
                        "totalStudents": len(data),
                        "presentCount": len(data) - absent,
                        "absentCount": absent,
                        "lateCount": 0,
                        "attendanceMarked": True,
                    }
                },
            )
        if path == "/api/attendance/export":
            return httpx.Response(200, content=b"spreadsheet")
        return httpx.Response(404, json={"error": "Unknown route"})


@pytest.fixture
def api():
    return FakeAttendanceApi()


@pytest.fixture
def client(api):
    app = create_app("config.testing", http_transport=httpx.MockTransport(api))
    with app.test_client() as client:
        with client.session_transaction() as sess:
            sess["user_id"] = 1
            sess["api_token"] = "tok-1"
        yield client


def test_requires_sign_in(api):
    app = create_app("config.testing", http_transport=httpx.MockTransport(api))

    response = app.test_client().get("/attendance")

    assert response.status_code == 401
    assert api.requests == []


def test_today_view_lists_sessions(client, api):
    response = client.get("/attendance")

    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    assert body["view"] == "today"
    assert body["data"]["pending"] == 1
    assert body["data"]["sessions"][0]["id"] == "cls-1"
    assert api.requests[0].headers["Authorization"] == "Bearer tok-1"


def test_marking_round_trip(client, api):
    client.get("/attendance")

    opened = client.post("/attendance/sessions/cls-1/open")
    assert opened.get_json()["data"]["state"] == "EDITING"

    changed = client.post("/attendance/sessions/cls-1/status", json={"student_id": "s2", "status": "ABSENT"})
    assert changed.get_json()["data"]["tally"]["ABSENT"] == 1

    submitted = client.post("/attendance/sessions/cls-1/submit")
    assert submitted.status_code == 200
    data = submitted.get_json()["data"]
    assert (data["present_count"], data["absent_count"], data["attendance_marked"]) == (1, 1, True)

    sent = json.loads(api.requests[-1].content)
    assert sent == {
        "classScheduleId": "cls-1",
        "attendanceData": [{"studentId": "s1", "status": "PRESENT"}, {"studentId": "s2", "status": "ABSENT"}],
    }


def test_invalid_status_is_a_bad_request(client):
    client.get("/attendance")
    client.post("/attendance/sessions/cls-1/open")

    response = client.post("/attendance/sessions/cls-1/status", json={"student_id": "s1", "status": "GONE"})

    assert response.status_code == 400
    assert response.get_json()["error"]["kind"] == "validation"


def test_submit_against_deleted_class_is_not_found(client, api):
    client.get("/attendance")
    client.post("/attendance/sessions/cls-1/open")
    api.mark_status = 404

    response = client.post("/attendance/sessions/cls-1/submit")

    assert response.status_code == 404
    assert response.get_json()["error"]["message"] == "Class schedule not found"


def test_edit_without_open_form_is_a_conflict(client):
    client.get("/attendance")

    response = client.post("/attendance/sessions/cls-1/bulk", json={"status": "LATE"})

    assert response.status_code == 409


def test_date_navigation(client):
    response = client.post("/attendance/date", json={"date": "2026-02-11"})
    assert response.get_json()["active_date"] == "2026-02-11"

    response = client.post("/attendance/date", json={"delta": -1})
    assert response.get_json()["active_date"] == "2026-02-10"

    assert client.post("/attendance/date", json={"date": "11/02/2026"}).status_code == 400


def test_export_downloads_spreadsheet(client):
    response = client.get("/attendance/export")

    assert response.status_code == 200
    assert response.data == b"spreadsheet"
    assert "attachment" in response.headers["Content-Disposition"]


def test_closing_workspace_releases_it(api):
    app = create_app("config.testing", http_transport=httpx.MockTransport(api))
    registry = app.extensions["attendance_workspaces"]
    with app.test_client() as client:
        with client.session_transaction() as sess:
            sess["user_id"] = 1
        client.get("/attendance")
        assert len(registry) == 1

        response = client.delete("/attendance/workspace")

        assert response.get_json() == {"ok": True, "dropped": True}
        assert len(registry) == 0
        with client.session_transaction() as sess:
            assert "workspace_id" not in sess

        client.get("/attendance")
        assert len(registry) == 1


def test_requests_on_one_workspace_run_one_at_a_time():
    registry = WorkspaceRegistry(build_container(api_config={"base_url": "http://attendance.test"}))
    order = []
    entered = threading.Event()
    release = threading.Event()

    def first():
        with registry.checkout("w1", None):
            order.append("first")
            entered.set()
            release.wait(2)
            order.append("first done")

    def second():
        with registry.checkout("w1", None):
            order.append("second")

    holder = threading.Thread(target=first)
    holder.start()
    assert entered.wait(2)
    waiter = threading.Thread(target=second)
    waiter.start()
    waiter.join(0.2)
    assert order == ["first"]

    with registry.checkout("w2", None):
        order.append("other workspace")

    release.set()
    holder.join(2)
    waiter.join(2)
    assert order == ["first", "other workspace", "first done", "second"]
