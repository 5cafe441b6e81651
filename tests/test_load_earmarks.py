"""
Tests for load_earmarks.py — CSV/XLSX ingestion into SQLite
"""
import sqlite3
import sys
from pathlib import Path

import openpyxl
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from earmarks.store import SQLiteStore
from load_earmarks import load_earmarks, main, read_source
from utils.query import build_predicate

CSV_TEXT = (
    "Year,Recipient,Budget Function,Agency,Amount,Sponsor Name\n"
    "2020,Acme Corp,Economic Development,DOT,\"$500,000\",Rep. Smith\n"
    "2021,  City of   Springfield ,Transportation,DOT,1250000,\n"
    ",,,,,\n"
    "n/a,Unknown Year Inc,Health,HHS,,Sen. Jones\n"
)


@pytest.fixture()
def csv_file(tmp_path) -> Path:
    path = tmp_path / "earmarks.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    return path


@pytest.fixture()
def xlsx_file(tmp_path) -> Path:
    path = tmp_path / "earmarks.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Year", "Recipient", "Budget Function", "Agency", "Amount"])
    ws.append([2019, "Lakeside Hospital", "Health", "HHS", 2000000.5])
    ws.append([2022, "Riverside Schools", "Education", "ED", None])
    wb.save(path)
    return path


def _fetch(db_path: Path, sql: str):
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    try:
        return conn.execute(sql).fetchall()
    finally:
        conn.close()


class TestReadSource:
    def test_normalizes_headers(self, csv_file):
        header, rows = read_source(csv_file)
        assert header == ["year", "recipient", "budget_function", "agency",
                          "amount", "sponsor_name"]
        assert len(rows) == 4

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "earmarks.json"
        path.write_text("[]")
        with pytest.raises(ValueError, match="Unsupported"):
            read_source(path)

    def test_missing_required_column(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("Year,Recipient,Agency\n2020,Acme,DOT\n")
        with pytest.raises(ValueError, match="budget_function"):
            read_source(path)

    def test_duplicate_column(self, tmp_path):
        path = tmp_path / "dup.csv"
        path.write_text("Year,Recipient,Budget Function,Agency,Amount,AMOUNT\n")
        with pytest.raises(ValueError, match="Duplicate"):
            read_source(path)


class TestLoadCsv:
    def test_row_count_skips_blank(self, csv_file, tmp_path):
        db = tmp_path / "out.sqlite"
        assert load_earmarks(csv_file, db) == 3

    def test_values_coerced(self, csv_file, tmp_path):
        db = tmp_path / "out.sqlite"
        load_earmarks(csv_file, db)
        rows = _fetch(db, "SELECT * FROM earmarks ORDER BY id")
        assert rows[0]["year"] == 2020
        assert rows[0]["amount"] == 500000.0
        assert rows[0]["sponsor_name"] == "Rep. Smith"
        assert rows[1]["recipient"] == "City of Springfield"
        assert rows[1]["sponsor_name"] is None
        assert rows[2]["year"] is None
        assert rows[2]["amount"] is None

    def test_append_and_replace(self, csv_file, tmp_path):
        db = tmp_path / "out.sqlite"
        load_earmarks(csv_file, db)
        load_earmarks(csv_file, db)
        assert _fetch(db, "SELECT COUNT(*) FROM earmarks")[0][0] == 6
        load_earmarks(csv_file, db, replace=True)
        assert _fetch(db, "SELECT COUNT(*) FROM earmarks")[0][0] == 3

    def test_small_batches(self, csv_file, tmp_path):
        db = tmp_path / "out.sqlite"
        assert load_earmarks(csv_file, db, batch_size=1) == 3

    def test_invalid_table_name(self, csv_file, tmp_path):
        with pytest.raises(ValueError):
            load_earmarks(csv_file, tmp_path / "out.sqlite", table="bad name")

    def test_searchable_after_load(self, csv_file, tmp_path):
        db = tmp_path / "out.sqlite"
        load_earmarks(csv_file, db)
        result = SQLiteStore(db).query("earmarks", build_predicate("springfield"), 10)
        assert result.count == 1


class TestLoadXlsx:
    def test_loads_workbook(self, xlsx_file, tmp_path):
        db = tmp_path / "out.sqlite"
        assert load_earmarks(xlsx_file, db, table="earmarks_xlsx") == 2
        rows = _fetch(db, "SELECT * FROM earmarks_xlsx ORDER BY id")
        assert rows[0]["recipient"] == "Lakeside Hospital"
        assert rows[0]["amount"] == 2000000.5
        assert rows[1]["amount"] is None


class TestMain:
    def test_success(self, csv_file, tmp_path, capsys):
        db = tmp_path / "out.sqlite"
        assert main([str(csv_file), "--db", str(db)]) == 0
        assert "Loaded 3 earmarks" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.csv")]) == 1
        assert "File not found" in capsys.readouterr().out

    def test_bad_file(self, tmp_path, capsys):
        path = tmp_path / "bad.csv"
        path.write_text("only,two\n")
        assert main([str(path), "--db", str(tmp_path / "out.sqlite")]) == 1
        assert "Missing required columns" in capsys.readouterr().out
