# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from fuel_import.logging.init import reset_logging

KEYED_HEADER = ["FUEL REPORT SUMMARY"] + [None] * 10

# Weekly summary export (key-named rows): two sites, one fill, one out-of-range row
KEYED_ROWS: list[list[object]] = [
    KEYED_HEADER,
    ["ALEX Total Running Hours", "8 hours"],
    ["Running Time From: 06:00:00 To: 14:00:00"],
    ["ALEX", "2026-01-20", "8 hours", "80%", "400", "56%", "280", "-120", "0"],
    ["BERGBRON Total Running Hours", "2 hours 30 minutes"],
    ["BERGBRON", "2026-01-20", "2 hours 30 minutes", "50,5%", "300,5", "70%", "450", "-50", "200", "20", "1000"],
    ["BERGBRON", "2026-01-25", "1 hours", "70%", "450", "65%", "420", "-30", "0"],
    ["January", "Total Hours", "10 hours 30 minutes"],
]

POSITIONAL_HEADER = [
    "Site", "Date", "Operating Hours", "Opening Percentage", "Opening Fuel",
    "Closing Percentage", "Closing Fuel", "Total Usage", "Total Fill",
    "Liter Usage Per Hour", "Cost For Usage",
]

# Weekly report with explicit header row; running times follow the data row
POSITIONAL_ROWS: list[list[object]] = [
    ["Weekly Fuel Report"],
    POSITIONAL_HEADER,
    ["ALEX", "Total Running Hours", "3 hours 15 minutes"],
    ["ALEX", "2026-01-14", "3 hours 15 minutes", "80%", "400", "70%", "350", "-50", "0"],
    ["ALEX", "Running Time", "From: 06:00:00", "To: 08:00:00"],
    ["ALEX", "Running Time", "From: 12:00:00", "To: 13:15:00"],
    ["ALEX", "2026-01-15", "0 hours", "80%", "400", "80%", "400", "0", "0"],
    ["ALEX", "Total Hours", "3 hours 15 minutes"],
    ["January", "Total Hours", "3 hours 15 minutes"],
]


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def make_workbook() -> Callable[[Path, list[list[object]]], Path]:
    def _make(path: Path, rows: list[list[object]], sheet: str = "Sheet1") -> Path:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
        return path
    return _make


@pytest.fixture()
def sample_config_yaml() -> str:
    return """workbook: ./data/weekly.xlsx
sheet_layout: keyed
start_date: 2026-01-19
end_date: 2026-01-21
cost_per_liter: 21.0
company: KFC
timezone: UTC
cost_codes:
  default: KFC-0001-0001-0003
  sites:
    ALEX: KFC-0001-0001-0001
    BALLYCLARE: KFC-0001-0001-0002-0004
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def keyed_workbook(temp_workdir: Path, make_workbook) -> Path:
    return make_workbook(temp_workdir / "data" / "weekly.xlsx", KEYED_ROWS)


@pytest.fixture()
def positional_workbook(temp_workdir: Path, make_workbook) -> Path:
    return make_workbook(temp_workdir / "data" / "weekly9.xlsx", POSITIONAL_ROWS)


@pytest.fixture()
def keyed_rows() -> list[list[object]]:
    return KEYED_ROWS


@pytest.fixture()
def positional_rows() -> list[list[object]]:
    return POSITIONAL_ROWS
