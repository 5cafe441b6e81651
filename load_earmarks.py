"""
Earmarks Database Builder

Load an earmarks export (CSV or XLSX) into the SQLite database that
search_earmarks.py and the API read.

Headers are normalized to snake_case.  The columns year, recipient,
budget_function, agency and amount are required; every other column is kept
as TEXT.  ``year`` is stored as INTEGER and ``amount`` as REAL; cells that do
not parse become NULL.

Usage:
    python load_earmarks.py earmarks.csv
    python load_earmarks.py earmarks_2020.xlsx --db data/earmarks.sqlite
    python load_earmarks.py earmarks.csv --replace
"""

import argparse
import csv
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Any

import openpyxl

from utils.config import DEFAULT_TABLE
from utils.strings import normalize_header, normalize_whitespace, safe_float, safe_int

logger = logging.getLogger("load_earmarks")

REQUIRED_COLUMNS = ("year", "recipient", "budget_function", "agency", "amount")
_COLUMN_TYPES = {"year": "INTEGER", "amount": "REAL"}
_INDEXED_COLUMNS = ("recipient", "budget_function", "agency")


def _read_csv(path: Path) -> tuple[list[Any], list[list[Any]]]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        rows = list(csv.reader(f))
    if not rows:
        return [], []
    return rows[0], rows[1:]


def _read_xlsx(path: Path) -> tuple[list[Any], list[list[Any]]]:
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        rows = [list(r) for r in wb.worksheets[0].iter_rows(values_only=True)]
    finally:
        wb.close()
    if not rows:
        return [], []
    return rows[0], rows[1:]


def read_source(path: Path) -> tuple[list[str], list[list[Any]]]:
    """Return (normalized header, raw data rows) for a CSV or XLSX file.

    Raises:
        ValueError: For unsupported extensions, duplicate or missing
            required columns.
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        raw_header, rows = _read_csv(path)
    elif suffix in (".xlsx", ".xlsm"):
        raw_header, rows = _read_xlsx(path)
    else:
        raise ValueError(f"Unsupported file type: {path.suffix} (expected .csv or .xlsx)")

    header = [normalize_header(h) for h in raw_header]
    seen: set[str] = set()
    for i, name in enumerate(header):
        if not name:
            header[i] = name = f"col_{i + 1}"
        if name in seen:
            raise ValueError(f"Duplicate column after normalization: {name!r}")
        seen.add(name)

    missing = [c for c in REQUIRED_COLUMNS if c not in seen]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")
    return header, rows


def _coerce(column: str, value: Any) -> Any:
    if column == "year":
        return safe_int(value)
    if column == "amount":
        return safe_float(value)
    if value is None:
        return None
    text = normalize_whitespace(str(value))
    return text or None


def create_table(conn: sqlite3.Connection, table: str, columns: list[str],
                 replace: bool = False) -> None:
    if not table.isidentifier():
        raise ValueError(f"Invalid table name: {table!r}")
    if replace:
        conn.execute(f'DROP TABLE IF EXISTS "{table}"')
    col_defs = [f'"{c}" {_COLUMN_TYPES.get(c, "TEXT")}' for c in columns]
    if "id" not in columns:
        col_defs.insert(0, "id INTEGER PRIMARY KEY AUTOINCREMENT")
    conn.execute(f'CREATE TABLE IF NOT EXISTS "{table}" ({", ".join(col_defs)})')
    for col in _INDEXED_COLUMNS:
        conn.execute(
            f'CREATE INDEX IF NOT EXISTS "idx_{table}_{col}" ON "{table}" ("{col}")'
        )


def load_earmarks(source: Path, db_path: Path, table: str = DEFAULT_TABLE,
                  replace: bool = False, batch_size: int = 1000) -> int:
    """Load ``source`` into ``table`` of the SQLite database at ``db_path``.

    Args:
        source: CSV or XLSX file with a header row.
        db_path: Database file; created if missing.
        table: Destination table name.
        replace: Drop an existing table first instead of appending.
        batch_size: Rows per executemany/commit.

    Returns:
        Number of rows inserted.
    """
    header, rows = read_source(source)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    try:
        create_table(conn, table, header, replace=replace)
        placeholders = ",".join("?" * len(header))
        cols = ",".join(f'"{c}"' for c in header)
        sql = f'INSERT INTO "{table}" ({cols}) VALUES ({placeholders})'

        inserted = 0
        batch: list[tuple] = []
        for raw in rows:
            if raw is None or all(v is None or str(v).strip() == "" for v in raw):
                continue
            raw = list(raw) + [None] * (len(header) - len(raw))
            batch.append(tuple(_coerce(c, v) for c, v in zip(header, raw)))
            if len(batch) >= batch_size:
                conn.executemany(sql, batch)
                conn.commit()
                inserted += len(batch)
                batch = []
        if batch:
            conn.executemany(sql, batch)
            conn.commit()
            inserted += len(batch)
    finally:
        conn.close()

    logger.info("Loaded %d rows from %s into %s:%s", inserted, source, db_path, table)
    return inserted


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load an earmarks export into SQLite")
    parser.add_argument("source", type=Path, help="CSV or XLSX file")
    parser.add_argument("--db", type=Path, default=Path("earmarks.sqlite"),
                        help="Database path (default: earmarks.sqlite)")
    parser.add_argument("--table", default=DEFAULT_TABLE,
                        help=f"Table name (default: {DEFAULT_TABLE})")
    parser.add_argument("--replace", action="store_true",
                        help="Drop the table before loading")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s %(message)s")

    if not args.source.exists():
        print(f"ERROR: File not found: {args.source}")
        return 1
    try:
        count = load_earmarks(args.source, args.db, table=args.table, replace=args.replace)
    except (ValueError, sqlite3.Error) as exc:
        print(f"ERROR: {exc}")
        return 1
    print(f"Loaded {count:,} earmarks into {args.db} ({args.table})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
