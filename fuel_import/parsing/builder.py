from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from ..models.config_models import CostCodeTable, DateRange, ImportConfig
from ..models.session_record import FillRecord, RunningTimeWindow, SessionRecord, SessionStatus
from ..models.sheet_row import ClassifiedRow, RowKind, SheetRow
from .fields import parse_duration_hours, parse_number, parse_percentage, parse_session_date

"""Session builder.

Consumes classified rows in a single forward pass and keeps all positional
state (current site, buffered running-time windows, sessions under
construction) in one BuilderState owned by the builder. Nothing is written to
storage here; finish() returns the ordered session records and
derive_fill_record() turns a session with a refuel into its fill record.
"""

__all__ = [
    "DEFAULT_START_TIME",
    "FILL_OPERATING_HOURS",
    "BuilderState",
    "SessionBuilder",
    "derive_fill_record",
]

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = time(6, 0, 0)
FILL_OPERATING_HOURS = 0.01  # 給油レコード識別用の名目値


@dataclass
class _SessionDraft:
    """Mutable session under construction; frozen into a SessionRecord on finish."""
    branch: str
    session_date: date
    operating_hours: float
    opening_percentage: float
    opening_fuel: float
    closing_percentage: float
    closing_fuel: float
    total_usage: float
    total_fill: float
    sheet_liter_usage_per_hour: float
    sheet_cost_for_usage: float
    windows: list[RunningTimeWindow] = field(default_factory=list)


@dataclass
class BuilderState:
    current_site: str | None = None
    pending_windows: list[RunningTimeWindow] = field(default_factory=list)
    # (SITE, date) -> draft. dict の挿入順 = 出力順
    open_sessions: dict[tuple[str, date], _SessionDraft] = field(default_factory=dict)
    last_key: tuple[str, date] | None = None
    data_rows: int = 0
    skipped_rows: int = 0


def _site_key(site: str) -> str:
    return site.strip().upper()


class SessionBuilder:
    """Fold classified rows into SessionRecords.

    Usage:
        builder = SessionBuilder.from_config(cfg)
        for item in classified_rows:
            builder.feed(item)
        sessions = builder.finish()
    """

    def __init__(
        self,
        *,
        date_range: DateRange,
        cost_per_liter: float,
        company: str = "KFC",
        cost_codes: CostCodeTable | None = None,
        tz: tzinfo | None = None,
        source_name: str = "",
    ) -> None:
        self.date_range = date_range
        self.cost_per_liter = cost_per_liter
        self.company = company
        self.cost_codes = cost_codes or CostCodeTable()
        self.tz = tz or ZoneInfo("UTC")
        self.source_name = source_name
        self.state = BuilderState()

    @classmethod
    def from_config(cls, config: ImportConfig) -> SessionBuilder:
        return cls(
            date_range=config.date_range,
            cost_per_liter=config.cost_per_liter,
            company=config.company,
            cost_codes=config.cost_codes,
            tz=ZoneInfo(config.timezone),
            source_name=config.workbook.name,
        )

    @property
    def skipped_rows(self) -> int:
        return self.state.skipped_rows

    @property
    def data_rows(self) -> int:
        return self.state.data_rows

    def feed(self, item: ClassifiedRow) -> None:
        if item.kind is RowKind.SITE_MARKER:
            self._on_site_marker(item.site or "")
        elif item.kind is RowKind.RUNNING_TIME and item.window is not None:
            self._on_running_time(item.window)
        elif item.kind is RowKind.DATA_ROW and item.session_date is not None:
            self._on_data_row(item.row, item.session_date)
        # HEADER / IGNORABLE: 状態変化なし

    def feed_all(self, items: Iterable[ClassifiedRow]) -> SessionBuilder:
        for item in items:
            self.feed(item)
        return self

    def _on_site_marker(self, site: str) -> None:
        self.state.current_site = site.strip()
        self.state.pending_windows.clear()
        logger.debug("site=%s", self.state.current_site)

    def _on_running_time(self, window: RunningTimeWindow) -> None:
        state = self.state
        if state.current_site is None:
            logger.debug("running time %s before any site marker ignored", window.label())
            return
        key = state.last_key
        if key is not None and key[0] == _site_key(state.current_site) and key in state.open_sessions:
            state.open_sessions[key].windows.append(window)
            logger.debug("running %s %s %s", key[0], key[1].isoformat(), window.label())
        else:
            state.pending_windows.append(window)

    def _on_data_row(self, row: SheetRow, session_date: date) -> None:
        state = self.state
        state.data_rows += 1
        if not state.current_site:
            state.skipped_rows += 1
            logger.debug("row=%d skipped: no site marker seen yet", row.index)
            return
        if parse_session_date(session_date, self.date_range) is None:
            state.skipped_rows += 1
            logger.debug(
                "row=%d skipped: %s outside %s", row.index, session_date.isoformat(), self.date_range
            )
            return

        hours = parse_duration_hours(row.cell("hours"))
        usage = abs(parse_number(row.cell("total_usage")))
        fill = abs(parse_number(row.cell("total_fill")))
        if not (usage > 0 or fill > 0 or hours > 0):
            state.skipped_rows += 1
            logger.debug("row=%d skipped: no activity", row.index)
            return

        draft = _SessionDraft(
            branch=state.current_site,
            session_date=session_date,
            operating_hours=hours,
            opening_percentage=parse_percentage(row.cell("opening_percentage")),
            opening_fuel=parse_number(row.cell("opening_fuel")),
            closing_percentage=parse_percentage(row.cell("closing_percentage")),
            closing_fuel=parse_number(row.cell("closing_fuel")),
            total_usage=usage,
            total_fill=fill,
            sheet_liter_usage_per_hour=parse_number(row.cell("liter_usage_per_hour")),
            sheet_cost_for_usage=parse_number(row.cell("cost_for_usage")),
            windows=list(state.pending_windows),
        )
        state.pending_windows.clear()
        key = (_site_key(draft.branch), session_date)
        if key in state.open_sessions:
            logger.debug("duplicate %s %s: later row wins", key[0], session_date.isoformat())
        state.open_sessions[key] = draft
        state.last_key = key

    def _session_bounds(self, draft: _SessionDraft) -> tuple[datetime, datetime]:
        if draft.windows:
            start = datetime.combine(draft.session_date, draft.windows[0].start, tzinfo=self.tz)
            end = datetime.combine(draft.session_date, draft.windows[-1].end, tzinfo=self.tz)
            if end < start:  # 日付跨ぎ
                end += timedelta(days=1)
            return start, end
        start = datetime.combine(draft.session_date, DEFAULT_START_TIME, tzinfo=self.tz)
        return start, start + timedelta(hours=draft.operating_hours)

    def _notes(self, draft: _SessionDraft) -> str:
        notes = f"Imported from {self.source_name} - {draft.session_date.isoformat()}"
        if draft.windows:
            notes += " [" + ", ".join(w.label() for w in draft.windows) + "]"
        return notes

    def _to_record(self, draft: _SessionDraft) -> SessionRecord:
        start, end = self._session_bounds(draft)
        hours = draft.operating_hours
        usage = draft.total_usage
        liter_per_hour = draft.sheet_liter_usage_per_hour or (usage / hours if hours > 0 else 0.0)
        cost_for_usage = draft.sheet_cost_for_usage or usage * self.cost_per_liter
        return SessionRecord(
            branch=draft.branch,
            company=self.company,
            cost_code=self.cost_codes.lookup(draft.branch),
            session_date=draft.session_date,
            session_start_time=start,
            session_end_time=end,
            operating_hours=hours,
            opening_percentage=draft.opening_percentage,
            opening_fuel=draft.opening_fuel,
            closing_percentage=draft.closing_percentage,
            closing_fuel=draft.closing_fuel,
            total_usage=usage,
            total_fill=draft.total_fill,
            liter_usage_per_hour=liter_per_hour,
            cost_per_liter=self.cost_per_liter,
            cost_for_usage=cost_for_usage,
            session_status=SessionStatus.COMPLETED,
            notes=self._notes(draft),
        )

    def finish(self) -> list[SessionRecord]:
        """Flush sessions in the order their (site, date) key was first created."""
        return [self._to_record(draft) for draft in self.state.open_sessions.values()]

    def records(self) -> list[SessionRecord]:
        """Sessions each followed by its derived fill record (if any)."""
        out: list[SessionRecord] = []
        for session in self.finish():
            out.append(session)
            fill = derive_fill_record(session, source_name=self.source_name)
            if fill is not None:
                out.append(fill)
        return out


def derive_fill_record(session: SessionRecord, source_name: str = "") -> FillRecord | None:
    """Return the refuel record for ``session``, or None when nothing was added."""
    if session.total_fill <= 0:
        return None
    values = asdict(session)
    notes = f"Fuel fill: {session.total_fill:g}L."
    if source_name:
        notes += f" Imported from {source_name}"
    values.update(
        operating_hours=FILL_OPERATING_HOURS,
        closing_fuel=session.opening_fuel + session.total_fill,
        total_usage=0.0,
        liter_usage_per_hour=0.0,
        cost_for_usage=0.0,
        session_status=SessionStatus.FUEL_FILL_COMPLETED,
        notes=notes,
    )
    return FillRecord(**values)
