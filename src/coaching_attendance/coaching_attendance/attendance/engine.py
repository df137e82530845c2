from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..common.validators import require_status
from ..core.enums import AttendanceStatus, MarkingState
from ..core.exceptions import IncompleteError, MarkingStateError
from ..sessions.catalog import ClassSessionCatalog
from ..sessions.model import ClassSession
from .model import AttendanceDecision
from .repository import AttendanceRepository
from .store import AttendanceRecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkingSnapshot:
    """Read-model of a marking session for the presentation layer."""

    session_id: Optional[str]
    state: MarkingState
    decisions: tuple[AttendanceDecision, ...]
    tally: dict
    last_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "decisions": [
                {"student_id": d.student_id, "status": d.status.value if d.status else None, "remark": d.remark}
                for d in self.decisions
            ],
            "tally": {k.value: v for k, v in self.tally.items()},
            "last_error": self.last_error,
        }


class AttendanceMarkingEngine:
    """State machine for marking one class session.

    UNOPENED -> INITIALIZING -> EDITING -> SUBMITTING -> COMMITTED, and
    SUBMITTING -> FAILED -> EDITING when the attendance API rejects a submit.
    Edits are only accepted while EDITING.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        catalog: ClassSessionCatalog,
        *,
        default_status: Optional[AttendanceStatus] = AttendanceStatus.PRESENT,
    ):
        self._attendance = attendance
        self._catalog = catalog
        self._default_status = default_status
        self._state = MarkingState.UNOPENED
        self._transitions = [MarkingState.UNOPENED]
        self._session: Optional[ClassSession] = None
        self._store: Optional[AttendanceRecordStore] = None
        self._bulk_status: Optional[AttendanceStatus] = None
        self._last_error: Optional[Exception] = None
        self._closed = False

    @property
    def state(self) -> MarkingState:
        return self._state

    @property
    def transitions(self) -> tuple[MarkingState, ...]:
        return tuple(self._transitions)

    @property
    def session(self) -> Optional[ClassSession]:
        return self._session

    @property
    def store(self) -> Optional[AttendanceRecordStore]:
        return self._store

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    @property
    def closed(self) -> bool:
        return self._closed

    def _transition(self, new_state: MarkingState) -> None:
        logger.debug(
            "Marking %s: %s -> %s",
            self._session.session_id if self._session else "-",
            self._state.value,
            new_state.value,
        )
        self._state = new_state
        self._transitions.append(new_state)

    def _require_editing(self) -> AttendanceRecordStore:
        if self._closed:
            raise MarkingStateError("This marking session has been closed")
        if self._state == MarkingState.SUBMITTING:
            raise MarkingStateError("Attendance for this class is being submitted")
        if self._state != MarkingState.EDITING or self._store is None:
            raise MarkingStateError(f"Attendance cannot be edited while {self._state.value.lower()}")
        return self._store

    def open(self, session: ClassSession) -> AttendanceRecordStore:
        if self._state != MarkingState.UNOPENED:
            raise MarkingStateError("Marking session already opened")

        self._session = session
        self._transition(MarkingState.INITIALIZING)

        # A prior status means the class is being re-marked; keep what was recorded.
        decisions = [
            AttendanceDecision(student_id=s.student_id, status=s.status or self._default_status)
            for s in session.roster
        ]
        self._store = AttendanceRecordStore(decisions)
        self._transition(MarkingState.EDITING)
        logger.info("Opened marking for session %s (%d students)", session.session_id, len(decisions))
        return self._store

    def set_status(self, student_id: str, status: Union[str, AttendanceStatus]) -> None:
        store = self._require_editing()
        store.set_status(student_id, require_status(status))
        self._bulk_status = None

    def set_remark(self, student_id: str, text: Optional[str]) -> None:
        store = self._require_editing()
        store.set_remark(student_id, text)

    def bulk_set(self, status: Union[str, AttendanceStatus]) -> None:
        store = self._require_editing()
        checked = require_status(status)
        store.set_all(checked)
        self._bulk_status = checked

    def validate(self) -> None:
        if self._store is None:
            raise MarkingStateError("No marking session is open")
        missing = self._store.missing()
        if missing:
            raise IncompleteError(missing)

    async def submit(self, *, bulk: bool = False) -> ClassSession:
        """Persist the decisions and write the new summary into the catalog.

        With ``bulk`` the last ``bulk_set`` status is sent through the bulk
        endpoint instead of the per-student payload.
        """

        store = self._require_editing()
        if bulk and self._bulk_status is None:
            raise MarkingStateError("Bulk submission requires a mark-all status")
        self.validate()

        session = self._session
        if not bulk and len(store) < session.total_students:
            # Per-student decisions cannot account for students missing from the roster.
            raise IncompleteError(
                (),
                f"Roster lists {len(store)} of {session.total_students} enrolled students; use mark all instead",
            )
        payload = store.to_payload()
        statuses = store.statuses()
        bulk_status = self._bulk_status if bulk else None

        self._transition(MarkingState.SUBMITTING)
        try:
            if bulk_status is not None:
                remote = await self._attendance.submit_bulk_marking(session_id=session.session_id, status=bulk_status)
            else:
                remote = await self._attendance.submit_marking(session_id=session.session_id, decisions=payload)
        except Exception as exc:
            self._last_error = exc
            self._transition(MarkingState.FAILED)
            self._transition(MarkingState.EDITING)
            if self._closed:
                self._store = None
            logger.warning("Submitting attendance for session %s failed: %s", session.session_id, exc)
            raise

        if bulk_status is not None:
            updated = self._catalog.apply_marking(session, bulk_status=bulk_status)
        else:
            updated = self._catalog.apply_marking(session, statuses)

        if (remote.present_count, remote.absent_count, remote.late_count) != (
            updated.present_count,
            updated.absent_count,
            updated.late_count,
        ):
            logger.info(
                "Server summary for session %s differs from submitted decisions (server=%s/%s/%s)",
                session.session_id,
                remote.present_count,
                remote.absent_count,
                remote.late_count,
            )

        self._session = updated
        self._last_error = None
        self._transition(MarkingState.COMMITTED)
        if self._closed:
            self._store = None
        logger.info(
            "Committed attendance for session %s: present=%d absent=%d late=%d excused=%d",
            updated.session_id,
            updated.present_count,
            updated.absent_count,
            updated.late_count,
            updated.excused_count,
        )
        return updated

    def close(self) -> None:
        """Drop the editable decisions; an in-flight submit still completes."""

        self._closed = True
        if self._state != MarkingState.SUBMITTING:
            self._store = None

    def snapshot(self) -> MarkingSnapshot:
        store = self._store
        return MarkingSnapshot(
            session_id=self._session.session_id if self._session else None,
            state=self._state,
            decisions=store.decisions if store else (),
            tally=store.tally() if store else {},
            last_error=str(self._last_error) if self._last_error else None,
        )
