from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any

"""Session record domain models.

SessionRecord is the storage-facing row produced by the session builder.
FillRecord is derived from a SessionRecord when fuel was added during the
session and is stored as an independent row.
"""

__all__ = [
    "SessionStatus",
    "RunningTimeWindow",
    "SessionRecord",
    "FillRecord",
]


class SessionStatus(Enum):
    """Status written to the ``session_status`` column.

    - COMPLETED: regular operating session
    - FUEL_FILL_COMPLETED: refuel event derived from a session
    """
    COMPLETED = "COMPLETED"
    FUEL_FILL_COMPLETED = "FUEL_FILL_COMPLETED"


@dataclass(frozen=True)
class RunningTimeWindow:
    """Time-of-day window parsed from a ``Running Time From: .. To: ..`` row."""
    start: time
    end: time

    def label(self) -> str:
        return f"{self.start.strftime('%H:%M:%S')}-{self.end.strftime('%H:%M:%S')}"


@dataclass(frozen=True)
class SessionRecord:
    """One site/day operating session ready for the session store.

    Field names follow the ``energy_rite_operating_sessions`` columns.
    """
    branch: str  # 表示用 (大文字化しない)
    company: str
    cost_code: str
    session_date: date
    session_start_time: datetime
    session_end_time: datetime
    operating_hours: float
    opening_percentage: float
    opening_fuel: float
    closing_percentage: float
    closing_fuel: float
    total_usage: float  # 常に正 (シート上は負値の場合あり)
    total_fill: float
    liter_usage_per_hour: float
    cost_per_liter: float
    cost_for_usage: float
    session_status: SessionStatus = SessionStatus.COMPLETED
    notes: str = ""

    @property
    def identity(self) -> str:
        """``BRANCH YYYY-MM-DD`` used in log lines and error records."""
        return f"{self.branch} {self.session_date.isoformat()}"

    def to_row(self) -> dict[str, Any]:
        """Column -> value mapping for INSERT (enum flattened to its value)."""
        row = asdict(self)
        row["session_status"] = self.session_status.value
        return row


@dataclass(frozen=True)
class FillRecord(SessionRecord):
    """Refuel record synthesized from a parent session (never parsed directly)."""
