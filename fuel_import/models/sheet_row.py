from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from .session_record import RunningTimeWindow

"""Row accessor models.

A sheet arrives either as key-named rows (dicts keyed by column header, with
``__EMPTY_n`` for unlabeled columns) or as raw positional rows (lists). The
SheetLayout resolves every logical role to a column key or index once per
sheet shape so that the classifier and builder only ever call ``cell(role)``.
"""

__all__ = [
    "ROLES",
    "SheetLayout",
    "SheetRow",
    "RowKind",
    "ClassifiedRow",
    "KEYED_LAYOUT",
    "POSITIONAL_LAYOUT",
    "get_layout",
]

ROLES = (
    "site",
    "date",
    "hours",
    "opening_percentage",
    "opening_fuel",
    "closing_percentage",
    "closing_fuel",
    "total_usage",
    "total_fill",
    "liter_usage_per_hour",
    "cost_for_usage",
)


@dataclass(frozen=True)
class SheetLayout:
    """Role -> column mapping for one sheet shape."""
    name: str
    columns: dict[str, str | int]
    requires_header: bool = False  # Site/Date ヘッダ行の探索が必要か
    header_labels: tuple[str, str] = ("Site", "Date")

    def __post_init__(self) -> None:
        missing = [r for r in ROLES if r not in self.columns]
        if missing:
            raise ValueError(f"layout '{self.name}' missing roles: {missing}")


KEYED_LAYOUT = SheetLayout(
    name="keyed",
    columns={
        "site": "FUEL REPORT SUMMARY",
        "date": "__EMPTY",
        "hours": "__EMPTY_1",
        "opening_percentage": "__EMPTY_2",
        "opening_fuel": "__EMPTY_3",
        "closing_percentage": "__EMPTY_4",
        "closing_fuel": "__EMPTY_5",
        "total_usage": "__EMPTY_6",
        "total_fill": "__EMPTY_7",
        "liter_usage_per_hour": "__EMPTY_8",
        "cost_for_usage": "__EMPTY_9",
    },
)

POSITIONAL_LAYOUT = SheetLayout(
    name="positional",
    columns={role: idx for idx, role in enumerate(ROLES)},
    requires_header=True,
)

_LAYOUTS = {KEYED_LAYOUT.name: KEYED_LAYOUT, POSITIONAL_LAYOUT.name: POSITIONAL_LAYOUT}


def get_layout(name: str) -> SheetLayout:
    try:
        return _LAYOUTS[name]
    except KeyError:
        raise ValueError(f"unknown sheet layout: {name!r}") from None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


@dataclass(frozen=True)
class SheetRow:
    """Shape-independent view of one raw row."""
    index: int  # 0-based source row index
    values: dict[str, Any] | list[Any]
    layout: SheetLayout

    def cell(self, role: str) -> Any:
        """Raw cell value for ``role`` ("" when absent or blank)."""
        key = self.layout.columns[role]
        if isinstance(self.values, dict):
            value = self.values.get(key, "")
        else:
            value = self.values[key] if isinstance(key, int) and key < len(self.values) else ""
        return "" if _is_blank(value) else value

    def text(self, role: str) -> str:
        value = self.cell(role)
        return value.strip() if isinstance(value, str) else str(value)

    def joined_text(self) -> str:
        """All non-empty cells of the row joined by a single space."""
        cells = self.values.values() if isinstance(self.values, dict) else self.values
        return " ".join(str(v).strip() for v in cells if not _is_blank(v))

    def is_empty(self) -> bool:
        cells = self.values.values() if isinstance(self.values, dict) else self.values
        return all(_is_blank(v) for v in cells)


class RowKind(Enum):
    SITE_MARKER = "SITE_MARKER"
    RUNNING_TIME = "RUNNING_TIME"
    DATA_ROW = "DATA_ROW"
    HEADER = "HEADER"
    IGNORABLE = "IGNORABLE"


@dataclass(frozen=True)
class ClassifiedRow:
    """Classification tag plus the minimal payload needed downstream."""
    kind: RowKind
    row: SheetRow
    site: str | None = None  # SITE_MARKER
    window: RunningTimeWindow | None = None  # RUNNING_TIME
    session_date: date | None = None  # DATA_ROW
    reason: str = field(default="", compare=False)  # IGNORABLE 理由 (debug 用)
