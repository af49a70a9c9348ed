"""Domain models for the fuel session importer."""

from .config_models import CostCodeTable, DatabaseConfig, DateRange, ImportConfig
from .error_record import ErrorRecord
from .import_result import ImportResult
from .session_record import FillRecord, RunningTimeWindow, SessionRecord, SessionStatus
from .sheet_row import ClassifiedRow, RowKind, SheetLayout, SheetRow

__all__ = [
    # Configuration models
    "CostCodeTable",
    "DatabaseConfig",
    "DateRange",
    "ImportConfig",
    # Sheet models
    "ClassifiedRow",
    "RowKind",
    "SheetLayout",
    "SheetRow",
    # Session models
    "FillRecord",
    "RunningTimeWindow",
    "SessionRecord",
    "SessionStatus",
    # Results
    "ErrorRecord",
    "ImportResult",
]
