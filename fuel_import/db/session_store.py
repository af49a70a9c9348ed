from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import fields
from typing import Any

import psycopg2
from psycopg2 import sql

from ..models.config_models import DateRange
from ..models.session_record import SessionRecord

"""Session store operations (psycopg2).

Each record is inserted on its own inside a SAVEPOINT: a failed insert is
rolled back to the savepoint and reported as SessionStoreError, leaving the
surrounding transaction usable for the next record. The store assigns the
primary key; none is sent.

The pre-import delete removes every stored session in the batch date range,
regardless of site, so that re-importing a workbook is idempotent.
"""

__all__ = [
    "SESSION_COLUMNS",
    "SessionStoreError",
    "delete_sessions_in_range",
    "insert_session",
]

SESSION_COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(SessionRecord))


class SessionStoreError(Exception):
    pass


@contextmanager
def _savepoint(cursor: Any, name: str) -> Iterator[None]:
    cursor.execute(sql.SQL("SAVEPOINT {}").format(sql.Identifier(name)))
    try:
        yield
    except psycopg2.Error as e:
        cursor.execute(sql.SQL("ROLLBACK TO SAVEPOINT {}").format(sql.Identifier(name)))
        raise SessionStoreError(str(e).strip()) from e
    cursor.execute(sql.SQL("RELEASE SAVEPOINT {}").format(sql.Identifier(name)))


def delete_sessions_in_range(cursor: Any, table: str, date_range: DateRange) -> int:
    """Delete stored sessions whose session_date lies in ``date_range``.

    Returns:
        Number of deleted rows (0 when the driver does not report a count)
    """
    query = sql.SQL("DELETE FROM {} WHERE session_date >= %s AND session_date <= %s").format(
        sql.Identifier(table)
    )
    with _savepoint(cursor, "session_delete"):
        cursor.execute(query, (date_range.start, date_range.end))
    rowcount = getattr(cursor, "rowcount", -1)
    return rowcount if isinstance(rowcount, int) and rowcount > 0 else 0


def insert_session(cursor: Any, table: str, record: SessionRecord) -> None:
    """INSERT one session or fill record.

    Raises:
        SessionStoreError: the database rejected the row
    """
    row = record.to_row()
    columns = [c for c in SESSION_COLUMNS if c in row]
    query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
        sql.Identifier(table),
        sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        sql.SQL(", ").join(sql.Placeholder() * len(columns)),
    )
    with _savepoint(cursor, "session_insert"):
        cursor.execute(query, [row[c] for c in columns])
