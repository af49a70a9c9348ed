from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_COMPANY,
    DEFAULT_COST_CODE,
    DEFAULT_TABLE,
    CostCodeTable,
    DatabaseConfig,
    DateRange,
    ImportConfig,
)

"""Config loader.

Responsibilities:
- Load the YAML batch config (default config/import.yml)
- Validate it against the bundled JSON schema (import_schema.json)
- Apply defaults (company, table, timezone=UTC, delete policy)
- Build the ImportConfig domain object
"""

SCHEMA_PATH = Path(__file__).with_name("import_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing/broken or config violates the schema
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _stringify_dates(data: dict[str, Any]) -> dict[str, Any]:
    # yaml は引用符なしの 2026-01-19 を date にするため文字列へ戻す
    return {k: (v.isoformat() if isinstance(v, date) else v) for k, v in data.items()}


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    data = _stringify_dates(data)
    _validate_config_schema(data)

    try:
        date_range = DateRange(
            start=date.fromisoformat(data["start_date"]),
            end=date.fromisoformat(data["end_date"]),
        )
    except ValueError as e:
        raise ConfigError(f"invalid date: {e}") from e
    if date_range.start > date_range.end:
        raise ConfigError(f"start_date after end_date: {date_range}")

    tz = data.get("timezone", "UTC")
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {tz}") from e

    codes_raw = data.get("cost_codes", {})
    cost_codes = CostCodeTable(
        codes={str(k): v for k, v in codes_raw.get("sites", {}).items()},
        default=codes_raw.get("default", DEFAULT_COST_CODE),
    )

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    # workbook の相対パスは config ファイル位置ではなくカレントディレクトリ基準
    return ImportConfig(
        workbook=Path(data["workbook"]),
        sheet_layout=data["sheet_layout"],
        date_range=date_range,
        cost_per_liter=float(data["cost_per_liter"]),
        cost_codes=cost_codes,
        company=data.get("company", DEFAULT_COMPANY),
        table=data.get("table", DEFAULT_TABLE),
        timezone=tz,
        dayfirst=data.get("dayfirst", False),
        delete_existing=data.get("delete_existing", True),
        abort_on_delete_failure=data.get("abort_on_delete_failure", False),
        database=db,
    )
