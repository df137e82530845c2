from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import ClassSession, SessionFilters


class SessionRepository(Protocol):
    async def fetch_today_sessions(self, *, session_date: date, filters: SessionFilters) -> Sequence[ClassSession]:
        raise NotImplementedError

    async def fetch_scheduled_sessions(self, *, session_date: date, filters: SessionFilters) -> Sequence[ClassSession]:
        raise NotImplementedError
