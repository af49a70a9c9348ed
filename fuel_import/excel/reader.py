from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.sheet_row import SheetLayout, SheetRow

"""Excel reader.

Only the first sheet of a workbook is imported. The sheet is read without
header inference and then shaped either as key-named rows (first row = keys,
``__EMPTY``/``__EMPTY_n`` for unlabeled columns, blank cells as "") or as raw
positional rows, depending on the configured layout.
"""

__all__ = [
    "WorkbookReadError",
    "SheetHeaderError",
    "MissingColumnsError",
    "SheetData",
    "read_excel_file",
    "to_keyed_rows",
    "to_positional_rows",
    "normalize_sheet",
]

EMPTY_KEY = "__EMPTY"


class WorkbookReadError(Exception):
    """Raised when the workbook is missing or cannot be parsed (fatal)."""


class SheetHeaderError(Exception):
    """Raised when a layout requiring a Site/Date header row has none."""


class MissingColumnsError(Exception):
    """Raised when key-named rows lack the keys the layout addresses."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[SheetRow]


def read_excel_file(path: Path) -> tuple[str, pd.DataFrame]:
    """Read the first sheet of ``path`` as a raw DataFrame (no header row).

    Returns:
        (sheet name, DataFrame)

    Raises:
        WorkbookReadError: file missing, not a workbook, or without sheets
    """
    if not path.exists():
        raise WorkbookReadError(f"workbook not found: {path}")
    try:
        with pd.ExcelFile(path) as xls:
            if not xls.sheet_names:
                raise WorkbookReadError(f"workbook has no sheets: {path}")
            name = str(xls.sheet_names[0])
            df = xls.parse(xls.sheet_names[0], header=None)
    except WorkbookReadError:
        raise
    except Exception as e:  # openpyxl / zipfile / ValueError などをまとめて扱う
        raise WorkbookReadError(f"cannot read workbook {path.name}: {e}") from e
    return name, df


def _cell(value: Any) -> Any:
    return "" if pd.isna(value) else value


def _header_keys(header: list[Any]) -> list[str]:
    """Column keys from the first row: blanks -> __EMPTY, __EMPTY_1, ...; duplicates suffixed."""
    keys: list[str] = []
    seen: dict[str, int] = {}
    for value in header:
        base = str(value).strip() if _cell(value) != "" else EMPTY_KEY
        count = seen.get(base, 0)
        seen[base] = count + 1
        keys.append(base if count == 0 else f"{base}_{count}")
    return keys


def to_keyed_rows(df: pd.DataFrame) -> tuple[list[str], list[tuple[int, dict[str, Any]]]]:
    """Shape a raw sheet as key-named rows.

    Returns the key list and (source row index, row dict) pairs. Fully blank
    rows are dropped.
    """
    if df.shape[0] == 0:
        return [], []
    keys = _header_keys(df.iloc[0].tolist())
    rows: list[tuple[int, dict[str, Any]]] = []
    for idx in range(1, df.shape[0]):
        raw = df.iloc[idx]
        if raw.isna().all():
            continue
        rows.append((idx, {k: _cell(v) for k, v in zip(keys, raw.tolist(), strict=False)}))
    return keys, rows


def to_positional_rows(df: pd.DataFrame) -> list[tuple[int, list[Any]]]:
    """Shape a raw sheet as (source row index, cell list) pairs, blank rows dropped."""
    rows: list[tuple[int, list[Any]]] = []
    for idx in range(df.shape[0]):
        raw = df.iloc[idx]
        if raw.isna().all():
            continue
        rows.append((idx, [_cell(v) for v in raw.tolist()]))
    return rows


def normalize_sheet(df: pd.DataFrame, sheet_name: str, layout: SheetLayout) -> SheetData:
    """Wrap a raw DataFrame into SheetRows addressed through ``layout``.

    Raises:
        MissingColumnsError: key-named layout whose site/date keys are absent
    """
    if layout.requires_header or all(isinstance(c, int) for c in layout.columns.values()):
        positional = to_positional_rows(df)
        columns = [str(i) for i in range(df.shape[1])]
        rows = [SheetRow(index=idx, values=values, layout=layout) for idx, values in positional]
        return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)

    keys, keyed = to_keyed_rows(df)
    required = {str(layout.columns["site"]), str(layout.columns["date"])}
    missing = required - set(keys)
    if missing:
        raise MissingColumnsError(f"sheet '{sheet_name}' missing columns: {sorted(missing)}")
    rows = [SheetRow(index=idx, values=values, layout=layout) for idx, values in keyed]
    return SheetData(sheet_name=sheet_name, columns=keys, rows=rows)
