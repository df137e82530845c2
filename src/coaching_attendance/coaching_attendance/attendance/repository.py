from __future__ import annotations

from typing import Protocol, Sequence

from ..core.enums import AttendanceStatus
from ..sessions.model import SessionSummary
from .model import AttendanceRecord, HistoryFilters


class AttendanceRepository(Protocol):
    async def submit_marking(self, *, session_id: str, decisions: Sequence[dict]) -> SessionSummary:
        raise NotImplementedError

    async def submit_bulk_marking(self, *, session_id: str, status: AttendanceStatus) -> SessionSummary:
        raise NotImplementedError

    async def fetch_history(self, *, filters: HistoryFilters) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def export_history(self, *, filters: HistoryFilters) -> bytes:
        """Spreadsheet export produced by the server; passed through untouched."""

        raise NotImplementedError
