from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..excel.reader import MissingColumnsError, SheetHeaderError, WorkbookReadError
from ..logging.init import enable_debug, log_summary, setup_logging
from ..models.config_models import ImportConfig
from ..services.orchestrator import ProcessingError, load_classified_rows, run_import
from ..services.summary import render_summary_line

"""CLI entrypoint.

python -m fuel_import.cli [--config PATH] [--debug] [--inspect-data [--limit N]]

Exit codes:
- 0: every built record was stored
- 2: some record inserts failed (skipped)
- 1: fatal (config, workbook, header, aborting delete, commit)
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _build_dsn(cfg: ImportConfig) -> str:
    """Resolve connection info.

    Priority: .env (loaded with override) / process env
    (DATABASE_URL, PGDSN, then PG* variables), then the config database section.
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a cursor on a non-autocommit connection; run_import commits."""
    conn = psycopg2.connect(_build_dsn(cfg))
    try:
        conn.autocommit = False
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; .env values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Fuel report workbook -> operating sessions importer")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Batch config YAML")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data",
        action="store_true",
        help="Print sheet columns and classified first rows then exit",
    )
    p.add_argument("--limit", type=int, default=50, help="Rows shown by --inspect-data")
    return p.parse_args(argv)


def _printable(values: dict[str, Any] | list[Any]) -> dict[str, Any] | list[Any]:
    # 空セルは省略、datetime は isoformat で表示
    def show(v: Any) -> Any:
        return v.isoformat() if hasattr(v, "isoformat") else v

    if isinstance(values, dict):
        return {k: show(v) for k, v in values.items() if v != ""}
    return [show(v) for v in values if v != ""]


def _inspect_data(cfg: ImportConfig, limit: int) -> int:
    try:
        sheet_name, columns, rows_read, classified = load_classified_rows(cfg)
    except (WorkbookReadError, SheetHeaderError, MissingColumnsError) as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {cfg.workbook.name}")
    print(f"  SHEET: {sheet_name} layout={cfg.sheet_layout} rows={rows_read}")
    print(f"  columns={columns}")
    for item in classified[:limit]:
        print(f"  row={item.row.index:<4} {item.kind.value:<12} {_printable(item.row.values)}")
    print(f"  total rows: {rows_read}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストで main([]) を渡すため)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        enable_debug()
        logger.debug("debug mode enabled")

    if args.inspect_data:
        return _inspect_data(cfg, args.limit)

    logger.info(f"Importing workbook: {cfg.workbook}")

    # DISABLE_DB_CONNECT=1 で DB 接続を完全に無効化 (mock mode)
    db_mode = "mock"
    try:
        if os.getenv("DISABLE_DB_CONNECT") == "1":
            logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
            result = run_import(cfg, cursor=None)
        else:
            try:
                with _db_connection(cfg) as cur:
                    db_mode = "live"
                    result = run_import(cfg, cursor=cur)
            except psycopg2.Error as db_e:
                if db_mode == "live":
                    logger.error(f"database: {db_e}")
                    return EXIT_FATAL
                logger.warning(f"DB connection failed -> fallback to mock mode: {db_e}")
                result = run_import(cfg, cursor=None)
    except ProcessingError as e:
        logger.error(f"processing({db_mode}): {e}")
        return EXIT_FATAL

    logger.info(f"mode={db_mode} inserted={result.inserted}")
    if result.delete_warning:
        logger.warning("existing sessions were not deleted; stored data may contain duplicates")

    # log_summary が "SUMMARY " を付与するので先頭ラベルを除去
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))

    if result.failed_inserts > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
