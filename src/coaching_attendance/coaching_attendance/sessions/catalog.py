from __future__ import annotations

import logging
from datetime import date
from typing import Mapping, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..core.exceptions import DomainError, NotFoundError
from .model import ClassSession, SessionFilters
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def session_order(session: ClassSession):
    return (session.start_time, session.subject)


class ClassSessionCatalog:
    """Holds the class sessions of the active date and filter set.

    The held list is the shared source of truth for session summaries.
    Only the marking engine writes summaries back, after a successful submit.
    """

    def __init__(self, sessions: SessionRepository):
        self._repo = sessions
        self._sessions: list[ClassSession] = []
        self._loaded_for: Optional[date] = None
        self._scheduled = False

    @property
    def sessions(self) -> tuple[ClassSession, ...]:
        return tuple(self._sessions)

    @property
    def loaded_for(self) -> Optional[date]:
        return self._loaded_for

    @property
    def scheduled(self) -> bool:
        return self._scheduled

    @property
    def marked_count(self) -> int:
        return sum(1 for s in self._sessions if s.attendance_marked)

    @property
    def pending_count(self) -> int:
        return sum(1 for s in self._sessions if not s.attendance_marked)

    async def load_for_date(
        self,
        session_date: date,
        filters: Optional[SessionFilters] = None,
        *,
        scheduled: bool = False,
    ) -> Sequence[ClassSession]:
        filters = filters or SessionFilters()
        try:
            if scheduled:
                fetched = await self._repo.fetch_scheduled_sessions(session_date=session_date, filters=filters)
            else:
                fetched = await self._repo.fetch_today_sessions(session_date=session_date, filters=filters)
        except DomainError:
            # Never leave another date's sessions on display.
            self._sessions = []
            self._loaded_for = None
            raise

        self._sessions = sorted(fetched, key=session_order)
        self._loaded_for = session_date
        self._scheduled = scheduled
        logger.info(
            "Loaded %d %s session(s) for %s",
            len(self._sessions),
            "scheduled" if scheduled else "today",
            session_date.isoformat(),
        )
        return self.sessions

    def get(self, session_id: str) -> ClassSession:
        for s in self._sessions:
            if s.session_id == session_id:
                return s
        raise NotFoundError(f"Class session {session_id!r} not found")

    def upcoming(self, limit: int) -> list[ClassSession]:
        """Sessions still waiting for attendance, in start-time order."""
        return [s for s in self._sessions if not s.attendance_marked][: max(int(limit), 0)]

    def discard(self, session_id: str) -> bool:
        before = len(self._sessions)
        self._sessions = [s for s in self._sessions if s.session_id != session_id]
        removed = len(self._sessions) != before
        if removed:
            logger.info("Discarded stale session %s", session_id)
        return removed

    def apply_marking(
        self,
        session: ClassSession,
        statuses: Optional[Mapping[str, AttendanceStatus]] = None,
        *,
        bulk_status: Optional[AttendanceStatus] = None,
    ) -> ClassSession:
        """Write a committed marking into the held session list.

        Returns the updated session. When the session is not held (the user
        moved to another date meanwhile) only the returned copy is updated.
        """

        current = next((s for s in self._sessions if s.session_id == session.session_id), session)
        if bulk_status is not None:
            updated = current.with_bulk_marking(bulk_status)
        else:
            updated = current.with_marking(statuses or {})

        for idx, s in enumerate(self._sessions):
            if s.session_id == updated.session_id:
                self._sessions[idx] = updated
                break
        else:
            logger.debug("Session %s not in current list; summary kept on the result only", session.session_id)
        return updated
