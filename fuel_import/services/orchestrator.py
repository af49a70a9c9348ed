from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from ..db.session_store import SessionStoreError, delete_sessions_in_range, insert_session
from ..excel.reader import (
    MissingColumnsError,
    SheetHeaderError,
    WorkbookReadError,
    normalize_sheet,
    read_excel_file,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.import_result import ImportResult
from ..models.session_record import FillRecord, SessionRecord
from ..models.sheet_row import ClassifiedRow, get_layout
from ..parsing.builder import SessionBuilder
from ..parsing.classifier import classify_rows
from .progress import ProgressTracker

"""Import run orchestration.

One run = one workbook, one sheet, one transaction:
1. read + classify the sheet (fatal on failure, nothing stored)
2. delete stored sessions in the batch date range (soft failure by default)
3. build sessions and derived fill records in a single pass
4. insert each record; a failed insert is logged and skipped
5. commit

cursor=None runs in mock mode: no delete, every record counts as inserted.
"""

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Run-aborting failure (workbook unreadable, aborting delete failure, commit failure)."""


def _flush_error_log(error_log: ErrorLogBuffer) -> None:
    try:
        path = error_log.flush()
    except OSError as e:
        logger.warning("error log flush failed: %s", e)
        return
    if path is not None:
        counts = " ".join(f"{k}={v}" for k, v in sorted(error_log.counts_by_type().items()))
        logger.info("error log written: %s (%s)", path, counts)


def _rollback(cursor: Any) -> None:
    if cursor is None:
        return
    try:
        cursor.connection.rollback()
    except Exception as e:  # pragma: no cover - connection already broken
        logger.debug("rollback failed: %s", e)


def load_classified_rows(
    config: ImportConfig,
) -> tuple[str, list[str], int, list[ClassifiedRow]]:
    """Read the workbook and classify every row.

    Returns:
        (sheet name, sheet column keys, number of non-blank rows, classified rows)

    Raises:
        WorkbookReadError, SheetHeaderError, MissingColumnsError
    """
    layout = get_layout(config.sheet_layout)
    sheet_name, df = read_excel_file(config.workbook)
    sheet = normalize_sheet(df, sheet_name, layout)
    classified = list(classify_rows(sheet.rows, layout, dayfirst=config.dayfirst))
    return sheet_name, sheet.columns, len(sheet.rows), classified


def _delete_existing(
    config: ImportConfig, cursor: Any, error_log: ErrorLogBuffer
) -> tuple[int, bool]:
    """Pre-import delete. Returns (deleted rows, warning flag)."""
    if not config.delete_existing:
        return 0, False
    if cursor is None:
        logger.info("mock mode: skipping delete of sessions %s", config.date_range)
        return 0, False
    logger.info("deleting existing sessions %s", config.date_range)
    try:
        deleted = delete_sessions_in_range(cursor, config.table, config.date_range)
    except SessionStoreError as e:
        error_log.record_failure("DELETE_ERROR", str(e))
        if config.abort_on_delete_failure:
            _rollback(cursor)
            _flush_error_log(error_log)
            raise ProcessingError(f"delete failed: {e}") from e
        logger.warning("delete failed, continuing import: %s", e)
        return 0, True
    logger.info("deleted %d existing sessions", deleted)
    return deleted, False


def _store_records(
    records: list[SessionRecord],
    config: ImportConfig,
    cursor: Any,
    error_log: ErrorLogBuffer,
) -> tuple[int, int]:
    """Insert records one by one. Returns (inserted, failed)."""
    inserted = 0
    failed = 0
    with ProgressTracker(len(records)) as progress:
        for record in records:
            if cursor is not None:
                try:
                    insert_session(cursor, config.table, record)
                except SessionStoreError as e:
                    failed += 1
                    logger.error("%s: %s", record.identity, e)
                    error_log.record_failure("DATABASE_INSERT_ERROR", str(e), record)
                    progress.advance(success=False)
                    continue
            inserted += 1
            progress.advance()
            if isinstance(record, FillRecord):
                logger.info("%s FILL %.1fL", record.identity, record.total_fill)
            else:
                logger.info(
                    "%s usage=%.1fL fill=%.1fL hours=%.2fh",
                    record.identity,
                    record.total_usage,
                    record.total_fill,
                    record.operating_hours,
                )
    return inserted, failed


def run_import(
    config: ImportConfig, cursor: Any = None, error_log: ErrorLogBuffer | None = None
) -> ImportResult:
    """Import one workbook into the session store.

    Args:
        config: batch configuration
        cursor: psycopg2 cursor (None = mock mode)
        error_log: buffer for error records (a fresh one when omitted)

    Raises:
        ProcessingError: the run was aborted; nothing was committed
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer(config.workbook.name)
    file_name = config.workbook.name

    try:
        sheet_name, _, rows_read, classified = load_classified_rows(config)
    except (WorkbookReadError, SheetHeaderError, MissingColumnsError) as e:
        error_log.record_failure("WORKBOOK_READ_ERROR", str(e))
        _flush_error_log(error_log)
        raise ProcessingError(str(e)) from e
    logger.info(
        "workbook=%s sheet=%s rows=%d layout=%s range=%s",
        file_name,
        sheet_name,
        rows_read,
        config.sheet_layout,
        config.date_range,
    )

    deleted, delete_warning = _delete_existing(config, cursor, error_log)

    builder = SessionBuilder.from_config(config).feed_all(classified)
    records = builder.records()
    fills = sum(1 for r in records if isinstance(r, FillRecord))
    logger.info(
        "built sessions=%d fills=%d skipped_rows=%d",
        len(records) - fills,
        fills,
        builder.skipped_rows,
    )

    inserted, failed = _store_records(records, config, cursor, error_log)

    if cursor is not None:
        try:
            cursor.connection.commit()
        except Exception as e:
            _rollback(cursor)
            error_log.record_failure("TRANSACTION_COMMIT_ERROR", str(e))
            _flush_error_log(error_log)
            raise ProcessingError(f"commit failed: {e}") from e

    _flush_error_log(error_log)

    end_time = datetime.now(UTC)
    return ImportResult(
        file_name=file_name,
        rows_read=rows_read,
        sessions_built=len(records) - fills,
        fills_built=fills,
        inserted=inserted,
        failed_inserts=failed,
        skipped_rows=builder.skipped_rows,
        deleted=deleted,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        delete_warning=delete_warning,
    )
