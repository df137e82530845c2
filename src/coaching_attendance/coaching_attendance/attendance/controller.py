from __future__ import annotations

import io
import threading
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Iterator, Optional

from flask import Flask, jsonify, request, send_file, session

from ..common.datetime_utils import parse_iso_date
from ..container import Container
from ..core.enums import ErrorKind
from ..sessions.model import ClassSession
from ..views.coordinator import ViewCoordinator
from ..views.panels import session_to_dict
from ..views.result import ViewResult

HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.STATE: 409,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NETWORK: 503,
    ErrorKind.SERVER: 502,
}


class WorkspaceRegistry:
    """In-process coordinators, one per browser session.

    Requests on one workspace run one at a time under its own lock.
    """

    def __init__(self, container: Container):
        self._container = container
        self._guard = threading.Lock()
        self._workspaces: dict[str, tuple[ViewCoordinator, threading.Lock]] = {}

    def __len__(self) -> int:
        return len(self._workspaces)

    def __contains__(self, workspace_id: object) -> bool:
        return workspace_id in self._workspaces

    @contextmanager
    def checkout(self, workspace_id: str, token: Optional[str]) -> Iterator[ViewCoordinator]:
        with self._guard:
            entry = self._workspaces.get(workspace_id)
            if entry is None:
                entry = (self._container.build_workspace(token=token), threading.Lock())
                self._workspaces[workspace_id] = entry
        workspace, lock = entry
        with lock:
            yield workspace

    def drop(self, workspace_id: str) -> bool:
        with self._guard:
            return self._workspaces.pop(workspace_id, None) is not None


def _to_json(data):
    if data is None:
        return None
    if isinstance(data, ClassSession):
        return session_to_dict(data)
    return data.to_dict()


def register(app: Flask, container: Container) -> WorkspaceRegistry:
    registry = WorkspaceRegistry(container)

    def login_required(view):
        @wraps(view)
        async def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"ok": False, "error": {"kind": "authentication", "message": "Please sign in"}}), 401
            return await view(*args, **kwargs)

        return wrapper

    def _workspace():
        if "workspace_id" not in session:
            session["workspace_id"] = uuid.uuid4().hex
        return registry.checkout(session["workspace_id"], session.get("api_token"))

    def _payload() -> dict:
        return request.get_json(silent=True) or request.form.to_dict()

    def _respond(workspace: ViewCoordinator, result: ViewResult):
        body = {
            "ok": result.ok,
            "view": result.view.value,
            "active_date": workspace.active_date.isoformat(),
            "message": result.message,
        }
        if result.ok:
            body["data"] = _to_json(result.data)
            return jsonify(body), 200

        body["error"] = {
            "kind": result.error_kind.value,
            "message": result.message,
            "retryable": result.retryable,
            "details": result.details,
        }
        return jsonify(body), HTTP_STATUS.get(result.error_kind, 500)

    def _bad_request(message: str):
        return jsonify({"ok": False, "error": {"kind": ErrorKind.VALIDATION.value, "message": message}}), 400

    @app.route("/attendance", methods=["GET"], endpoint="attendance_view")
    @login_required
    async def attendance_view():
        with _workspace() as workspace:
            return _respond(workspace, await workspace.refresh())

    @app.route("/attendance/workspace", methods=["DELETE"], endpoint="attendance_close_workspace")
    @login_required
    async def attendance_close_workspace():
        workspace_id = session.pop("workspace_id", None)
        dropped = registry.drop(workspace_id) if workspace_id else False
        return jsonify({"ok": True, "dropped": dropped}), 200

    @app.route("/attendance/date", methods=["POST"], endpoint="attendance_date")
    @login_required
    async def attendance_date():
        payload = _payload()
        with _workspace() as workspace:
            try:
                if payload.get("today"):
                    result = await workspace.reset_to_today()
                elif payload.get("date"):
                    result = await workspace.go_to_date(parse_iso_date(str(payload["date"])))
                else:
                    result = await workspace.navigate_date(int(payload.get("delta", 0)))
            except ValueError:
                return _bad_request("Invalid date")
            return _respond(workspace, result)

    @app.route("/attendance/view/<view_name>", methods=["POST"], endpoint="attendance_select_view")
    @login_required
    async def attendance_select_view(view_name: str):
        with _workspace() as workspace:
            return _respond(workspace, await workspace.select_view(view_name))

    @app.route("/attendance/filters", methods=["POST"], endpoint="attendance_filters")
    @login_required
    async def attendance_filters():
        payload = _payload()
        try:
            date_from = parse_iso_date(payload["date_from"]) if payload.get("date_from") else None
            date_to = parse_iso_date(payload["date_to"]) if payload.get("date_to") else None
        except ValueError:
            return _bad_request("Invalid date filter")

        with _workspace() as workspace:
            result = await workspace.set_filters(
                student_search=payload.get("search"),
                subject=payload.get("subject"),
                batch=payload.get("batch"),
                status=payload.get("status"),
                date_from=date_from,
                date_to=date_to,
            )
            return _respond(workspace, result)

    @app.route("/attendance/dashboard", methods=["GET"], endpoint="attendance_dashboard")
    @login_required
    async def attendance_dashboard():
        with _workspace() as workspace:
            return _respond(workspace, await workspace.load_dashboard())

    @app.route("/attendance/export", methods=["GET"], endpoint="attendance_export")
    @login_required
    async def attendance_export():
        with _workspace() as workspace:
            result = await workspace.export_history()
            if not result.ok:
                return _respond(workspace, result)
            return send_file(
                io.BytesIO(result.data),
                mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                as_attachment=True,
                download_name=f"attendance_{workspace.active_date.isoformat()}.xlsx",
            )

    @app.route("/attendance/sessions/<session_id>/open", methods=["POST"], endpoint="attendance_open")
    @login_required
    async def attendance_open(session_id: str):
        with _workspace() as workspace:
            return _respond(workspace, await workspace.open_marking(session_id))

    @app.route("/attendance/sessions/<session_id>/marking", methods=["GET"], endpoint="attendance_marking")
    @login_required
    async def attendance_marking(session_id: str):
        with _workspace() as workspace:
            return _respond(workspace, workspace.marking(session_id))

    @app.route("/attendance/sessions/<session_id>/status", methods=["POST"], endpoint="attendance_set_status")
    @login_required
    async def attendance_set_status(session_id: str):
        payload = _payload()
        with _workspace() as workspace:
            result = workspace.set_status(session_id, str(payload.get("student_id") or ""), payload.get("status"))
            return _respond(workspace, result)

    @app.route("/attendance/sessions/<session_id>/remark", methods=["POST"], endpoint="attendance_set_remark")
    @login_required
    async def attendance_set_remark(session_id: str):
        payload = _payload()
        with _workspace() as workspace:
            result = workspace.set_remark(session_id, str(payload.get("student_id") or ""), payload.get("remark"))
            return _respond(workspace, result)

    @app.route("/attendance/sessions/<session_id>/bulk", methods=["POST"], endpoint="attendance_bulk_set")
    @login_required
    async def attendance_bulk_set(session_id: str):
        status = _payload().get("status")
        with _workspace() as workspace:
            return _respond(workspace, workspace.bulk_set(session_id, status))

    @app.route("/attendance/sessions/<session_id>/submit", methods=["POST"], endpoint="attendance_submit")
    @login_required
    async def attendance_submit(session_id: str):
        with _workspace() as workspace:
            return _respond(workspace, await workspace.submit_marking(session_id))

    @app.route("/attendance/sessions/<session_id>/close", methods=["POST"], endpoint="attendance_close")
    @login_required
    async def attendance_close(session_id: str):
        with _workspace() as workspace:
            return _respond(workspace, workspace.close_marking(session_id))

    @app.route("/attendance/sessions/<session_id>/mark-all", methods=["POST"], endpoint="attendance_mark_all")
    @login_required
    async def attendance_mark_all(session_id: str):
        status = _payload().get("status")
        with _workspace() as workspace:
            return _respond(workspace, await workspace.quick_mark(session_id, status))

    return registry
