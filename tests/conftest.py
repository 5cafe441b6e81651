"""
Pytest fixtures for the earmarks search tests.

Provides:
  - SAMPLE_ROWS / earmarks_db: a small SQLite earmarks table in tmp_path
  - StaticStore, FailingStore, GatedStore: in-memory stand-ins for the
    store query interface used by the controller and API tests
"""

import asyncio
import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from earmarks.store import QueryResult  # noqa: E402


# (year, recipient, budget_function, agency, amount, description)
SAMPLE_ROWS = [
    (2020, "Acme Corp", "Economic Development", "Commerce", 500000.0, "Plant retooling"),
    (2021, "City of Springfield", "Transportation", "DOT", 1250000.0, "Bridge repair"),
    (2021, "Springfield Transit Authority", "Transportation", "DOT", 800000.0, "Bus depot"),
    (2022, "Lakeside Hospital", "Health", "HHS", 2000000.5, "Clinic expansion"),
    (2019, "100% Renewables Co-op", "Energy", "DOE", 75000.0, "Solar array"),
    (2019, "Under_Score Labs", "Science", "NSF", 120000.0, None),
    (2023, "Riverside Schools", "Education", "ED", None, "STEM lab"),
]


def _create_earmarks_table(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE earmarks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            year INTEGER,
            recipient TEXT,
            budget_function TEXT,
            agency TEXT,
            amount REAL,
            description TEXT
        )
    """)


def insert_rows(db_path: Path, rows: list[tuple]) -> None:
    conn = sqlite3.connect(str(db_path))
    conn.executemany(
        "INSERT INTO earmarks (year, recipient, budget_function, agency, amount, "
        "description) VALUES (?, ?, ?, ?, ?, ?)",
        rows,
    )
    conn.commit()
    conn.close()


@pytest.fixture()
def empty_earmarks_db(tmp_path) -> Path:
    """Path to a SQLite database with an empty earmarks table."""
    db_path = tmp_path / "earmarks.sqlite"
    conn = sqlite3.connect(str(db_path))
    _create_earmarks_table(conn)
    conn.commit()
    conn.close()
    return db_path


@pytest.fixture()
def earmarks_db(empty_earmarks_db) -> Path:
    """Path to a SQLite database loaded with SAMPLE_ROWS."""
    insert_rows(empty_earmarks_db, SAMPLE_ROWS)
    return empty_earmarks_db


@pytest.fixture()
def large_earmarks_db(empty_earmarks_db) -> Path:
    """25 highway earmarks under DOT plus the sample rows."""
    highway = [
        (2018 + i % 5, f"Highway District {i}", "Transportation", "DOT",
         100000.0 + i, "Road work")
        for i in range(25)
    ]
    insert_rows(empty_earmarks_db, highway + SAMPLE_ROWS)
    return empty_earmarks_db


# ── Store stand-ins ───────────────────────────────────────────────────────────

class StaticStore:
    """Evaluates predicates against an in-memory list of records."""

    backend_name = "static"

    def __init__(self, records: list[dict]):
        self.records = records
        self.calls: list[tuple] = []

    def query(self, table, predicate, limit):
        self.calls.append((table, predicate, limit))
        matched = [r for r in self.records if predicate.matches(r)]
        return QueryResult(rows=matched[:limit], count=len(matched))

    def close(self):
        pass


class FailingStore:
    """Raises the given exception from every query."""

    backend_name = "failing"

    def __init__(self, exc: BaseException):
        self.exc = exc

    def query(self, table, predicate, limit):
        raise self.exc

    def close(self):
        pass


class GatedStore:
    """Async store whose calls resolve only when the test opens their gate."""

    def __init__(self, results: dict[str, QueryResult]):
        self.results = results
        self.calls: list[str] = []
        self._gates: dict[str, asyncio.Event] = {}

    def gate(self, query_text: str) -> asyncio.Event:
        return self._gates.setdefault(query_text, asyncio.Event())

    async def query(self, table, predicate, limit):
        query_text = predicate.conditions[0].value
        self.calls.append(query_text)
        await self.gate(query_text).wait()
        result = self.results[query_text]
        if isinstance(result, BaseException):
            raise result
        return result


def sample_records() -> list[dict]:
    keys = ("year", "recipient", "budget_function", "agency", "amount", "description")
    return [dict(zip(keys, row)) for row in SAMPLE_ROWS]


@pytest.fixture()
def static_store() -> StaticStore:
    return StaticStore(sample_records())
