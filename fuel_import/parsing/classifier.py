from __future__ import annotations

import re
from collections.abc import Iterator, Sequence

from ..excel.reader import SheetHeaderError
from ..models.session_record import RunningTimeWindow
from ..models.sheet_row import ClassifiedRow, RowKind, SheetLayout, SheetRow
from .fields import ISO_DATE_RE, parse_date, parse_time_of_day

"""Row classifier.

Every raw row is tagged SITE_MARKER / RUNNING_TIME / DATA_ROW / HEADER /
IGNORABLE. Rules are checked in order and the first match wins. A row that
cannot be understood is IGNORABLE; classification never raises.
"""

__all__ = [
    "SITE_MARKER_PHRASE",
    "RUNNING_TIME_PHRASE",
    "classify_row",
    "classify_rows",
    "locate_header",
]

SITE_MARKER_PHRASE = "Total Running Hours"
RUNNING_TIME_PHRASE = "Running Time"
FROM_RE = re.compile(r"From:\s*(\d{2}:\d{2}:\d{2})")
TO_RE = re.compile(r"To:\s*(\d{2}:\d{2}:\d{2})")

AGGREGATE_LABELS = frozenset(
    [
        "january", "february", "march", "april", "may", "june", "july",
        "august", "september", "october", "november", "december",
        "total hours",
    ]
)


def _ignorable(row: SheetRow, reason: str) -> ClassifiedRow:
    return ClassifiedRow(kind=RowKind.IGNORABLE, row=row, reason=reason)


def _is_header(first: str, second: str, layout: SheetLayout) -> bool:
    site_label, date_label = layout.header_labels
    return first.casefold() == site_label.casefold() and second.casefold() == date_label.casefold()


def classify_row(row: SheetRow, dayfirst: bool = False) -> ClassifiedRow:
    """Classify one row using the first two addressed cells (site, date)."""
    if row.is_empty():
        return _ignorable(row, "empty")

    first = row.text("site")
    second = row.text("date")

    # サイト見出し: "ALEX Total Running Hours" / ["ALEX", "Total Running Hours", ...]
    marker_cell = next((c for c in (first, second) if SITE_MARKER_PHRASE in c), None)
    if marker_cell is not None:
        site = marker_cell.replace(SITE_MARKER_PHRASE, "").strip() or (
            first if SITE_MARKER_PHRASE not in first else ""
        )
        if not site:
            return _ignorable(row, "site marker without site name")
        return ClassifiedRow(kind=RowKind.SITE_MARKER, row=row, site=site)

    if RUNNING_TIME_PHRASE in first or RUNNING_TIME_PHRASE in second:
        text = row.joined_text()
        from_match = FROM_RE.search(text)
        to_match = TO_RE.search(text)
        start = parse_time_of_day(from_match.group(1)) if from_match else None
        end = parse_time_of_day(to_match.group(1)) if to_match else None
        if start is None or end is None:
            return _ignorable(row, "running time without From/To")
        return ClassifiedRow(
            kind=RowKind.RUNNING_TIME, row=row, window=RunningTimeWindow(start=start, end=end)
        )

    if _is_header(first, second, row.layout):
        return ClassifiedRow(kind=RowKind.HEADER, row=row)

    if first.casefold() in AGGREGATE_LABELS or second.casefold() in AGGREGATE_LABELS:
        return _ignorable(row, "aggregate label")

    if ISO_DATE_RE.match(second):
        session_date = parse_date(second)
        if session_date is None:
            return _ignorable(row, f"invalid date {second!r}")
        return ClassifiedRow(kind=RowKind.DATA_ROW, row=row, session_date=session_date)

    site_label, date_label = row.layout.header_labels
    if first and second and first != site_label and second != date_label:
        session_date = parse_date(row.cell("date"), dayfirst=dayfirst)
        if session_date is None:
            return _ignorable(row, f"unparseable date {second!r}")
        return ClassifiedRow(kind=RowKind.DATA_ROW, row=row, session_date=session_date)

    return _ignorable(row, "no rule matched")


def locate_header(rows: Sequence[SheetRow]) -> int:
    """Return the position of the Site/Date header row within ``rows``.

    Raises:
        SheetHeaderError: no header row exists
    """
    for pos, row in enumerate(rows):
        if _is_header(row.text("site"), row.text("date"), row.layout):
            return pos
    raise SheetHeaderError("could not find header row (Site/Date)")


def classify_rows(
    rows: Sequence[SheetRow], layout: SheetLayout, dayfirst: bool = False
) -> Iterator[ClassifiedRow]:
    """Classify a whole sheet in order.

    For layouts that require header discovery, rows before the header are
    IGNORABLE and the header itself is reported as HEADER.
    """
    start = locate_header(rows) if layout.requires_header else -1
    for pos, row in enumerate(rows):
        if pos < start:
            yield _ignorable(row, "before header")
        elif pos == start:
            yield ClassifiedRow(kind=RowKind.HEADER, row=row)
        else:
            yield classify_row(row, dayfirst=dayfirst)
