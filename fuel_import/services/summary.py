from __future__ import annotations

from ..models.import_result import ImportResult

"""Summary line rendering for the SUMMARY output."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # Format very small numbers to avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line for one import.

    Format:
    SUMMARY file={name} sessions={n} fills={n} inserted={n} failed={n}
    skipped_rows={n} deleted={n} elapsed_sec={s}

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2026, 1, 20, tzinfo=timezone.utc)
        >>> result = ImportResult(
        ...     file_name="Weekly (10).xlsx", rows_read=40, sessions_built=3,
        ...     fills_built=1, inserted=4, failed_inserts=0, skipped_rows=2,
        ...     deleted=5, start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY file=Weekly (10).xlsx sessions=3 fills=1 inserted=4 failed=0 skipped_rows=2 deleted=5 elapsed_sec=2'
    """
    return (
        f"SUMMARY file={result.file_name} "
        f"sessions={result.sessions_built} "
        f"fills={result.fills_built} "
        f"inserted={result.inserted} "
        f"failed={result.failed_inserts} "
        f"skipped_rows={result.skipped_rows} "
        f"deleted={result.deleted} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
