"""Row classification, field parsing and session building for fuel report sheets."""

from .builder import SessionBuilder, derive_fill_record
from .classifier import classify_row, classify_rows, locate_header
from .fields import (
    parse_date,
    parse_duration_hours,
    parse_number,
    parse_percentage,
    parse_session_date,
    parse_time_of_day,
)

__all__ = [
    "SessionBuilder",
    "derive_fill_record",
    "classify_row",
    "classify_rows",
    "locate_header",
    "parse_date",
    "parse_duration_hours",
    "parse_number",
    "parse_percentage",
    "parse_session_date",
    "parse_time_of_day",
]
