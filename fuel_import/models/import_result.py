from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Import result model.

Aggregated counters for one import run, rendered as the SUMMARY line and used
to pick the CLI exit code.
"""


@dataclass(frozen=True)
class ImportResult:
    """Aggregated results for a single workbook import."""
    file_name: str
    rows_read: int  # シート上の全行数
    sessions_built: int
    fills_built: int
    inserted: int  # session + fill の成功件数
    failed_inserts: int  # 保存失敗 (skipped 扱い)
    skipped_rows: int  # 範囲外 / サイト不明 / 活動ゼロ
    deleted: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    delete_warning: bool = False

    @property
    def records_built(self) -> int:
        return self.sessions_built + self.fills_built

    @property
    def skipped(self) -> int:
        """Total skipped count as reported to operators."""
        return self.skipped_rows + self.failed_inserts
