from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

"""Config dataclasses for the fuel session importer.

These are produced by fuel_import.config.loader after YAML loading and schema
validation, and are the only configuration objects the services depend on.
"""

DEFAULT_COMPANY = "KFC"
DEFAULT_TABLE = "energy_rite_operating_sessions"
DEFAULT_COST_CODE = "KFC-0001-0001-0003"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class DateRange:
    """Closed interval ``[start, end]`` of accepted session dates."""
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


@dataclass(frozen=True)
class CostCodeTable:
    """Site -> billing cost code lookup with a fallback entry."""
    codes: dict[str, str] = field(default_factory=dict)
    default: str = DEFAULT_COST_CODE

    def lookup(self, site: str) -> str:
        key = site.strip().upper()
        for name, code in self.codes.items():
            if name.strip().upper() == key:
                return code
        return self.default


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for one import batch."""
    workbook: Path  # 取込対象 Excel (先頭シートのみ)
    sheet_layout: str  # "keyed" | "positional"
    date_range: DateRange
    cost_per_liter: float
    cost_codes: CostCodeTable
    company: str = DEFAULT_COMPANY
    table: str = DEFAULT_TABLE
    timezone: str = "UTC"
    dayfirst: bool = False
    delete_existing: bool = True
    abort_on_delete_failure: bool = False
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
