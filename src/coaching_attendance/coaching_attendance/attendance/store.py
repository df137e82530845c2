from __future__ import annotations

from typing import Iterable, Optional

from ..common.validators import clean_remark
from ..core.enums import AttendanceStatus
from ..core.exceptions import UnknownStudentError
from .model import AttendanceDecision


class AttendanceRecordStore:
    """Editable decisions of one session, keyed by student id in roster order."""

    def __init__(self, decisions: Iterable[AttendanceDecision]):
        self._decisions: dict[str, AttendanceDecision] = {}
        for d in decisions:
            self._decisions[d.student_id] = d

    def __len__(self) -> int:
        return len(self._decisions)

    def __contains__(self, student_id: object) -> bool:
        return student_id in self._decisions

    @property
    def decisions(self) -> tuple[AttendanceDecision, ...]:
        return tuple(
            AttendanceDecision(student_id=d.student_id, status=d.status, remark=d.remark)
            for d in self._decisions.values()
        )

    def get(self, student_id: str) -> AttendanceDecision:
        decision = self._decisions.get(student_id)
        if decision is None:
            raise UnknownStudentError(student_id)
        return decision

    def set_status(self, student_id: str, status: AttendanceStatus) -> None:
        self.get(student_id).status = status

    def set_remark(self, student_id: str, remark: Optional[str]) -> None:
        self.get(student_id).remark = clean_remark(remark)

    def set_all(self, status: AttendanceStatus) -> None:
        for d in self._decisions.values():
            d.status = status

    def missing(self) -> list[str]:
        return [d.student_id for d in self._decisions.values() if d.status is None]

    def statuses(self) -> dict[str, AttendanceStatus]:
        return {d.student_id: d.status for d in self._decisions.values() if d.status is not None}

    def tally(self) -> dict[AttendanceStatus, int]:
        counts = {status: 0 for status in AttendanceStatus}
        for d in self._decisions.values():
            if d.status is not None:
                counts[d.status] += 1
        return counts

    def to_payload(self) -> list[dict]:
        """Wire form of the decisions, one entry per roster student."""

        payload = []
        for d in self._decisions.values():
            entry = {"studentId": d.student_id, "status": d.status.value if d.status else None}
            if d.remark:
                entry["notes"] = d.remark
            payload.append(entry)
        return payload
