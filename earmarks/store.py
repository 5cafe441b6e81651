"""
Earmark data stores.

Both stores expose the same single operation::

    store.query(table, predicate, limit) -> QueryResult

returning up to ``limit`` rows (all columns) plus the exact number of rows
matching the predicate, ignoring the limit.  Every failure (transport, server,
missing table, malformed payload) is raised as StoreError with a descriptive
message.

PostgrestStore talks to a PostgREST endpoint (a Supabase project's
``/rest/v1``); SQLiteStore reads a local database built by load_earmarks.py.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests

from utils.config import AppConfig
from utils.http import RetryStrategy, SessionManager
from utils.query import Predicate, predicate_to_postgrest, predicate_to_sql

logger = logging.getLogger(__name__)

_CONTENT_RANGE = re.compile(r"^\s*(?:\d+-\d+|\*)/(\d+|\*)\s*$")


class StoreError(RuntimeError):
    """A store call failed; the message is meant for display."""


@dataclass
class QueryResult:
    """Rows returned for one page plus the total match count."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    count: int = 0


# ── PostgREST / Supabase ──────────────────────────────────────────────────────

def parse_content_range(header: str | None) -> int | None:
    """Return the total from a ``Content-Range`` header like ``0-9/42``.

    Returns None when the header is missing or the total is ``*``.
    """
    if not header:
        return None
    m = _CONTENT_RANGE.match(header)
    if not m or m.group(1) == "*":
        return None
    return int(m.group(1))


def _error_message(resp: requests.Response) -> str:
    """Best-effort message from a PostgREST error response."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error_description", "error", "hint", "details"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return f"HTTP {resp.status_code}"


class PostgrestStore:
    """Query a PostgREST endpoint with requests."""

    backend_name = "postgrest"

    def __init__(self, base_url: str, api_key: str = "",
                 timeout: float | None = None,
                 retry_strategy: RetryStrategy | None = None,
                 rest_path: str = "/rest/v1"):
        if not base_url:
            raise ValueError("base_url is required for the REST store")
        self.base_url = base_url.rstrip("/")
        self.rest_path = "/" + rest_path.strip("/") if rest_path else ""
        self.timeout = timeout
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._sessions = SessionManager(retry_strategy=retry_strategy, headers=headers)

    def table_url(self, table: str) -> str:
        return f"{self.base_url}{self.rest_path}/{table}"

    def build_params(self, predicate: Predicate, limit: int) -> dict[str, str]:
        params = {"select": "*", "limit": str(limit)}
        or_filter = predicate_to_postgrest(predicate)
        if or_filter is not None:
            params["or"] = or_filter
        return params

    def query(self, table: str, predicate: Predicate, limit: int) -> QueryResult:
        url = self.table_url(table)
        params = self.build_params(predicate, limit)
        logger.debug("GET %s params=%s", url, params)
        try:
            resp = self._sessions.session.get(
                url,
                params=params,
                headers={"Prefer": "count=exact"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StoreError(str(exc) or exc.__class__.__name__) from exc

        if resp.status_code >= 400:
            raise StoreError(_error_message(resp))

        try:
            rows = resp.json()
        except ValueError as exc:
            raise StoreError("Malformed response: body is not JSON") from exc
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise StoreError("Malformed response: expected a list of rows")

        count = parse_content_range(resp.headers.get("Content-Range"))
        return QueryResult(rows=rows, count=count if count is not None else len(rows))

    def close(self) -> None:
        self._sessions.close()


# ── SQLite ────────────────────────────────────────────────────────────────────

class SQLiteStore:
    """Query a local SQLite database.

    A connection is opened per call so the store can be used from worker
    threads (the controller runs synchronous stores via asyncio.to_thread).
    """

    backend_name = "sqlite"

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        if not self.db_path.exists():
            raise StoreError(
                f"Database not found at '{self.db_path}'. "
                "Run 'python load_earmarks.py <file>' to build it."
            )
        uri = self.db_path.resolve().as_uri() + "?mode=ro"
        conn = sqlite3.connect(uri, uri=True, check_same_thread=False, timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    @staticmethod
    def _table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
        if not table.isidentifier():
            raise StoreError(f"Invalid table name: {table!r}")
        rows = conn.execute(
            "SELECT name FROM pragma_table_info(?)", (table,)
        ).fetchall()
        if not rows:
            raise StoreError(f"Table '{table}' does not exist")
        return {r["name"] for r in rows}

    def query(self, table: str, predicate: Predicate, limit: int) -> QueryResult:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        try:
            columns = self._table_columns(conn, table)
            try:
                where, params = predicate_to_sql(predicate, allowed_columns=columns)
            except ValueError as exc:
                raise StoreError(str(exc)) from exc

            sql = f'SELECT * FROM "{table}" {where} ORDER BY rowid LIMIT ?'
            logger.debug("sqlite query: %s params=%s", sql, params)
            rows = conn.execute(sql, params + [limit]).fetchall()
            count = conn.execute(
                f'SELECT COUNT(*) FROM "{table}" {where}', params
            ).fetchone()[0]
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

        return QueryResult(rows=[dict(r) for r in rows], count=count)

    def close(self) -> None:
        pass


def make_store(cfg: AppConfig) -> PostgrestStore | SQLiteStore:
    """Build the store selected by the application config."""
    if cfg.store_url:
        return PostgrestStore(
            cfg.store_url,
            api_key=cfg.store_key,
            timeout=cfg.store_timeout,
            retry_strategy=RetryStrategy(max_retries=cfg.store_retries),
        )
    return SQLiteStore(cfg.db_path)
