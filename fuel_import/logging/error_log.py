from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import FILE_LEVEL, ErrorRecord
from ..models.session_record import SessionRecord

"""Per-run error log.

One buffer per imported workbook. Failures are recorded either against a
stored record (its branch and session date) or against the whole run
(``<FILE_LEVEL>``), and written once as JSON Lines to
``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC). Nothing is written for a clean run.
"""

__all__ = [
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    def __init__(self, file_name: str, logs_dir: Path | None = None) -> None:
        self.file_name = file_name
        self._logs_dir = logs_dir or LOGS_DIR
        self._pending: list[ErrorRecord] = []
        self._counts: Counter[str] = Counter()
        self._path: Path | None = None

    @property
    def file_path(self) -> Path:
        # 初回参照時に確定し、同じ run の flush は同じファイルへ追記
        if self._path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._path = self._logs_dir / f"errors-{stamp}.log"
        return self._path

    @property
    def records(self) -> list[ErrorRecord]:
        """Records not yet flushed."""
        return list(self._pending)

    def record_failure(
        self, error_type: str, message: str, record: SessionRecord | None = None
    ) -> ErrorRecord:
        """Buffer one failure; ``record=None`` marks a run-level failure."""
        if record is None:
            branch, session_date = FILE_LEVEL, ""
        else:
            branch, session_date = record.branch, record.session_date.isoformat()
        entry = ErrorRecord.create(self.file_name, branch, session_date, error_type, message)
        self._pending.append(entry)
        self._counts[error_type] += 1
        return entry

    def counts_by_type(self) -> dict[str, int]:
        """Failures recorded during the run, flushed or not."""
        return dict(self._counts)

    def flush(self) -> Path | None:
        """Append pending records; returns the log path, or None when nothing was pending."""
        if not self._pending:
            return None
        path = self.file_path
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.writelines(r.to_json_line() + "\n" for r in self._pending)
        self._pending.clear()
        return path
