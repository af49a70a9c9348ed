from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timedelta
from typing import Any

import pandas as pd

from ..models.config_models import DateRange

"""Field parsers for human-formatted report cells.

None of these functions raise on bad input: unparseable values reduce to 0
(numbers, durations) or None (dates, times) so that one corrupt cell never
aborts an import.
"""

__all__ = [
    "ISO_DATE_RE",
    "parse_number",
    "parse_percentage",
    "parse_duration_hours",
    "parse_time_of_day",
    "parse_date",
    "parse_session_date",
]

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_OF_DAY_RE = re.compile(r"(\d{2}):(\d{2}):(\d{2})")
HOURS_RE = re.compile(r"(\d+)\s*hours?", re.IGNORECASE)
MINUTES_RE = re.compile(r"(\d+)\s*min(?:ute)?s?", re.IGNORECASE)
_NON_NUMERIC_RE = re.compile(r"[^\d.\-]")
# parseFloat 相当: 先頭の数値部分のみ採用
_LEADING_NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def _real_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalize_separators(text: str) -> str:
    """Resolve decimal/thousands separators to a plain dotted decimal.

    "1,234.5" -> "1234.5", "1.234,5" -> "1234.5", "897,500" -> "897.500",
    "1,234,567" -> "1234567", "1.234.567" -> "1234567"
    """
    commas = text.count(",")
    dots = text.count(".")
    if commas and dots:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    # 区切りが複数回 = 桁区切りのみ
    if commas > 1:
        return text.replace(",", "")
    if dots > 1:
        return text.replace(".", "")
    return text.replace(",", ".")


def parse_number(value: Any) -> float:
    """Parse a messy numeric cell, returning 0.0 when nothing numeric remains."""
    if _is_missing(value):
        return 0.0
    if _real_number(value):
        return float(value) if not math.isnan(value) else 0.0
    text = _normalize_separators(str(value).strip())
    # "1e-05" のような repr もそのまま読めるように先に float() を試す
    try:
        number = float(text)
    except ValueError:
        pass
    else:
        if math.isfinite(number):
            return number
    cleaned = _NON_NUMERIC_RE.sub("", text)
    match = _LEADING_NUMBER_RE.match(cleaned)
    if match is None:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:  # pragma: no cover - regex guarantees a float literal
        return 0.0


def parse_percentage(value: Any) -> float:
    """Same normalization as parse_number with a trailing ``%`` removed."""
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    return parse_number(value)


def parse_duration_hours(value: Any) -> float:
    """Parse "2 hours 30 minutes" style text into hours.

    Hour-only, minute-only and combined forms are accepted. Numeric cells are
    taken as hours and Excel time/duration cells are converted. Anything else
    yields 0.0.
    """
    if _is_missing(value):
        return 0.0
    if _real_number(value):
        return max(float(value), 0.0) if not math.isnan(value) else 0.0
    if isinstance(value, timedelta):
        return max(value.total_seconds() / 3600, 0.0)
    if isinstance(value, time):
        return value.hour + value.minute / 60 + value.second / 3600
    text = str(value)
    hours_match = HOURS_RE.search(text)
    minutes_match = MINUTES_RE.search(text)
    hours = int(hours_match.group(1)) if hours_match else 0
    minutes = int(minutes_match.group(1)) if minutes_match else 0
    return hours + minutes / 60


def parse_time_of_day(value: Any) -> time | None:
    """Parse the first ``HH:MM:SS`` occurrence in ``value``."""
    if isinstance(value, time):
        return value
    if _is_missing(value):
        return None
    match = TIME_OF_DAY_RE.search(str(value))
    if match is None:
        return None
    try:
        return time(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:  # 25:00:00 など
        return None


def parse_date(value: Any, dayfirst: bool = False) -> date | None:
    """Reduce a date-bearing cell to a calendar date.

    Strict ``YYYY-MM-DD`` strings are parsed directly; other strings go through
    ``pandas.to_datetime`` (locale-flexible). Date/datetime cells pass through.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    if ISO_DATE_RE.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    # 数値のみ (例: "8") は日付として扱わない
    if _LEADING_NUMBER_RE.fullmatch(text):
        return None
    try:
        parsed = pd.to_datetime(text, errors="coerce", dayfirst=dayfirst)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_session_date(value: Any, date_range: DateRange, dayfirst: bool = False) -> date | None:
    """parse_date restricted to the batch's accepted closed date range."""
    parsed = parse_date(value, dayfirst=dayfirst)
    if parsed is None or not date_range.contains(parsed):
        return None
    return parsed
