from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Callable, Optional, Union

from ..attendance.engine import AttendanceMarkingEngine
from ..attendance.model import HistoryFilters
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_start, today_local
from ..common.validators import optional_status, require_non_empty, require_status
from ..core.enums import AttendanceStatus, AttendanceView, MarkingState, SessionStatus
from ..core.exceptions import (
    DomainError,
    MarkingStateError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from ..sessions.catalog import ClassSessionCatalog
from ..sessions.model import SessionFilters
from ..statistics.aggregator import StatisticsAggregator
from ..statistics.model import StatisticsWindow
from .dashboard import DashboardService
from .panels import HistoryPanel, SessionsPanel, StatisticsPanel
from .result import ViewResult

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], AttendanceMarkingEngine]


class ViewCoordinator:
    """Owns the date cursor, the active view and the open marking sessions.

    All four views share one date cursor. Changing the date keeps the view,
    changing the view keeps the date, and each change reloads the active view
    once. This is the only layer that turns errors into user-facing results.
    """

    def __init__(
        self,
        catalog: ClassSessionCatalog,
        attendance: AttendanceRepository,
        aggregator: StatisticsAggregator,
        dashboard: DashboardService,
        *,
        engine_factory: EngineFactory,
        today_provider: Callable[[], date] = today_local,
    ):
        self._catalog = catalog
        self._attendance = attendance
        self._aggregator = aggregator
        self._dashboard = dashboard
        self._engine_factory = engine_factory
        self._today = today_provider

        self._active_date = today_provider()
        self._view = AttendanceView.TODAY
        self._session_filters = SessionFilters()
        self._history_filters = HistoryFilters()
        self._engines: dict[str, AttendanceMarkingEngine] = {}

    @property
    def active_date(self) -> date:
        return self._active_date

    @property
    def active_view(self) -> AttendanceView:
        return self._view

    @property
    def session_filters(self) -> SessionFilters:
        return self._session_filters

    @property
    def history_filters(self) -> HistoryFilters:
        return self._history_filters

    @property
    def catalog(self) -> ClassSessionCatalog:
        return self._catalog

    def today(self) -> date:
        return self._today()

    def _fail(self, error: DomainError, view: Optional[AttendanceView] = None) -> ViewResult:
        if isinstance(error, RemoteError):
            logger.warning("%s view command failed: %s", (view or self._view).value, error)
        else:
            logger.info("%s view command rejected: %s", (view or self._view).value, error)
        return ViewResult.failure(view or self._view, error)

    # Navigation

    async def navigate_date(self, delta_days: int) -> ViewResult:
        self._active_date = self._active_date + timedelta(days=int(delta_days))
        return await self.refresh()

    async def reset_to_today(self) -> ViewResult:
        self._active_date = self.today()
        return await self.refresh()

    async def go_to_date(self, target: date) -> ViewResult:
        self._active_date = target
        return await self.refresh()

    async def select_view(self, view: Union[str, AttendanceView]) -> ViewResult:
        try:
            self._view = AttendanceView(view)
        except ValueError:
            return self._fail(ValidationError(f"Unknown attendance view: {view!r}"))
        return await self.refresh()

    async def set_filters(
        self,
        *,
        student_search: Optional[str] = None,
        subject: Optional[str] = None,
        batch: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> ViewResult:
        try:
            session_status = None
            record_status = None
            if status:
                if status.lower() in {s.value for s in SessionStatus}:
                    session_status = SessionStatus(status.lower())
                else:
                    record_status = optional_status(status)
            if date_from and date_to and date_to < date_from:
                raise ValidationError("End date must be on or after the start date")
        except ValidationError as exc:
            return self._fail(exc)

        subject = (subject or "").strip() or None
        batch = (batch or "").strip() or None
        self._session_filters = SessionFilters(subject=subject, batch=batch, status=session_status)
        self._history_filters = HistoryFilters(
            student_search=(student_search or "").strip() or None,
            subject=subject,
            batch=batch,
            status=record_status,
            date_from=date_from,
            date_to=date_to,
        )
        return await self.refresh()

    async def refresh(self) -> ViewResult:
        view = self._view
        try:
            if view in (AttendanceView.TODAY, AttendanceView.SCHEDULE):
                data = await self._load_sessions(scheduled=view == AttendanceView.SCHEDULE)
            elif view == AttendanceView.HISTORY:
                records = await self._attendance.fetch_history(filters=self._history_filters)
                data = HistoryPanel(records=tuple(records))
            else:
                data = await self._load_statistics()
        except DomainError as exc:
            return self._fail(exc, view)
        return ViewResult.success(view, data)

    async def _load_sessions(self, *, scheduled: bool) -> SessionsPanel:
        sessions = await self._catalog.load_for_date(self._active_date, self._session_filters, scheduled=scheduled)
        return SessionsPanel(
            panel_date=self._active_date,
            sessions=tuple(sessions),
            marked=self._catalog.marked_count,
            pending=self._catalog.pending_count,
        )

    async def _load_statistics(self) -> StatisticsPanel:
        window = StatisticsWindow(start=month_start(self._active_date), end=self._active_date)
        # Two trend periods back so week-over-week is available early in a month.
        lookback = window.end - timedelta(days=2 * self._aggregator.trend_days - 1)
        filters = replace(
            self._history_filters,
            date_from=min(window.start, lookback),
            date_to=window.end,
            status=None,
            limit=None,
        )
        records = await self._attendance.fetch_history(filters=filters)
        statistics = self._aggregator.summarize(records, window)
        in_window = [r for r in records if window.contains(r.record_date)]
        alerts = self._aggregator.compute_low_attendance_alerts(self._aggregator.student_rates(in_window))
        return StatisticsPanel(
            window=window,
            statistics=statistics,
            alerts=tuple(alerts),
            threshold=self._aggregator.threshold,
        )

    # Dashboard & export

    async def load_dashboard(self) -> ViewResult:
        try:
            summary = await self._dashboard.load(self.today())
        except DomainError as exc:
            return self._fail(exc)
        return ViewResult.success(self._view, summary)

    async def export_history(self) -> ViewResult:
        try:
            blob = await self._attendance.export_history(filters=self._history_filters)
        except DomainError as exc:
            return self._fail(exc, AttendanceView.HISTORY)
        return ViewResult.success(AttendanceView.HISTORY, blob)

    # Marking

    def _engine(self, session_id: str) -> AttendanceMarkingEngine:
        engine = self._engines.get(session_id)
        if engine is None or engine.closed:
            raise MarkingStateError("Attendance marking is not open for this class")
        return engine

    def _forget_if_gone(self, session_id: str, error: DomainError) -> None:
        if isinstance(error, NotFoundError):
            self._engines.pop(session_id, None)
            self._catalog.discard(session_id)

    def marking(self, session_id: str) -> ViewResult:
        try:
            return ViewResult.success(self._view, self._engine(session_id).snapshot())
        except DomainError as exc:
            return self._fail(exc)

    async def open_marking(self, session_id: str) -> ViewResult:
        try:
            session_id = require_non_empty(session_id, "Class")
            existing = self._engines.get(session_id)
            if existing is not None:
                if existing.closed:
                    raise MarkingStateError("The previous submission for this class is still in progress")
                return ViewResult.success(self._view, existing.snapshot())

            session = self._catalog.get(session_id)
            engine = self._engine_factory()
            engine.open(session)
            self._engines[session_id] = engine
        except DomainError as exc:
            self._forget_if_gone(session_id, exc)
            return self._fail(exc)
        return ViewResult.success(self._view, engine.snapshot())

    def set_status(self, session_id: str, student_id: str, status: Union[str, AttendanceStatus]) -> ViewResult:
        try:
            engine = self._engine(session_id)
            engine.set_status(student_id, status)
        except DomainError as exc:
            return self._fail(exc)
        return ViewResult.success(self._view, engine.snapshot())

    def set_remark(self, session_id: str, student_id: str, text: Optional[str]) -> ViewResult:
        try:
            engine = self._engine(session_id)
            engine.set_remark(student_id, text)
        except DomainError as exc:
            return self._fail(exc)
        return ViewResult.success(self._view, engine.snapshot())

    def bulk_set(self, session_id: str, status: Union[str, AttendanceStatus]) -> ViewResult:
        try:
            engine = self._engine(session_id)
            engine.bulk_set(status)
        except DomainError as exc:
            return self._fail(exc)
        return ViewResult.success(self._view, engine.snapshot())

    async def submit_marking(self, session_id: str) -> ViewResult:
        try:
            engine = self._engine(session_id)
        except DomainError as exc:
            return self._fail(exc)

        try:
            updated = await engine.submit()
        except DomainError as exc:
            if engine.closed:
                self._engines.pop(session_id, None)
            self._forget_if_gone(session_id, exc)
            return self._fail(exc)

        self._engines.pop(session_id, None)
        return ViewResult.success(self._view, updated, message="Attendance marked successfully")

    def close_marking(self, session_id: str) -> ViewResult:
        engine = self._engines.get(session_id)
        if engine is None:
            return ViewResult.success(self._view)
        engine.close()
        if engine.state != MarkingState.SUBMITTING:
            self._engines.pop(session_id, None)
        return ViewResult.success(self._view)

    async def quick_mark(self, session_id: str, status: Union[str, AttendanceStatus]) -> ViewResult:
        """Mark every student of a class with one status through the bulk endpoint."""

        engine = None
        try:
            status = require_status(status)
            if session_id in self._engines:
                raise MarkingStateError("Close the open attendance form for this class first")
            session = self._catalog.get(session_id)
            engine = self._engine_factory()
            engine.open(session)
            engine.bulk_set(status)
            self._engines[session_id] = engine
            updated = await engine.submit(bulk=True)
        except DomainError as exc:
            if engine is not None and self._engines.get(session_id) is engine:
                self._engines.pop(session_id, None)
            self._forget_if_gone(session_id, exc)
            return self._fail(exc)

        self._engines.pop(session_id, None)
        return ViewResult.success(self._view, updated, message=f"All students marked as {status.value.lower()}")
