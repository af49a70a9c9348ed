from __future__ import annotations

from datetime import UTC, date, datetime
from pathlib import Path
from unittest.mock import MagicMock

from fuel_import.config.loader import load_config
from fuel_import.models.session_record import FillRecord, SessionStatus
from fuel_import.parsing.builder import SessionBuilder
from fuel_import.services.orchestrator import load_classified_rows, run_import

"""End-to-end import of a key-named weekly summary export."""


def _records(config_path: Path):
    cfg = load_config(config_path)
    _, _, _, classified = load_classified_rows(cfg)
    builder = SessionBuilder.from_config(cfg).feed_all(classified)
    return builder, builder.records()


def test_keyed_workbook_builds_sessions_and_fill(write_config: Path, keyed_workbook: Path):
    builder, records = _records(write_config)
    assert builder.skipped_rows == 1
    assert [(r.branch, type(r).__name__) for r in records] == [
        ("ALEX", "SessionRecord"),
        ("BERGBRON", "SessionRecord"),
        ("BERGBRON", "FillRecord"),
    ]

    alex = records[0]
    assert alex.session_date == date(2026, 1, 20)
    assert alex.cost_code == "KFC-0001-0001-0001"
    assert alex.operating_hours == 8.0
    assert alex.total_usage == 120.0
    assert alex.liter_usage_per_hour == 15.0
    assert alex.cost_for_usage == 2520.0
    assert alex.session_start_time == datetime(2026, 1, 20, 6, 0, tzinfo=UTC)
    assert alex.session_end_time == datetime(2026, 1, 20, 14, 0, tzinfo=UTC)
    assert alex.notes == "Imported from weekly.xlsx - 2026-01-20 [06:00:00-14:00:00]"

    bergbron = records[1]
    assert bergbron.cost_code == "KFC-0001-0001-0003"
    assert bergbron.operating_hours == 2.5
    assert bergbron.opening_percentage == 50.5
    assert bergbron.opening_fuel == 300.5
    assert bergbron.total_usage == 50.0
    assert bergbron.total_fill == 200.0
    assert bergbron.session_status is SessionStatus.COMPLETED

    fill = records[2]
    assert isinstance(fill, FillRecord)
    assert fill.session_status is SessionStatus.FUEL_FILL_COMPLETED
    assert fill.closing_fuel == 500.5
    assert fill.total_usage == 0
    assert fill.cost_for_usage == 0


def test_keyed_workbook_reimport_deletes_range_first(write_config: Path, keyed_workbook: Path):
    cfg = load_config(write_config)
    cur = MagicMock()
    cur.rowcount = 3

    first = run_import(cfg, cursor=cur)
    second = run_import(cfg, cursor=cur)

    assert first.inserted == second.inserted == 3
    assert second.deleted == 3
    deletes = [c for c in cur.execute.call_args_list if isinstance(c.args[-1], tuple)]
    assert len(deletes) == 2
    assert all(c.args[1] == (date(2026, 1, 19), date(2026, 1, 21)) for c in deletes)
