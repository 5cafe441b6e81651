"""
Tests for utils/query.py — predicate building and serialization

Checks that build_predicate() produces one case-insensitive "contains"
condition per search column, that the SQL and PostgREST serializers keep
filter-syntax characters literal, and that SQLite evaluation agrees with the
in-memory definition of a match.
"""
import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.config import DEFAULT_SEARCH_COLUMNS
from utils.query import (
    ILIKE,
    Condition,
    Predicate,
    build_predicate,
    escape_like,
    predicate_to_postgrest,
    predicate_to_sql,
)


class TestBuildPredicate:
    def test_default_columns(self):
        pred = build_predicate("acme")
        assert pred.columns == ("recipient", "budget_function", "agency")
        assert all(c.operator == ILIKE for c in pred.conditions)
        assert all(c.value == "acme" for c in pred.conditions)

    def test_custom_columns(self):
        pred = build_predicate("x", columns=["recipient"])
        assert pred.conditions == (Condition("recipient", ILIKE, "x"),)

    def test_no_columns_rejected(self):
        with pytest.raises(ValueError):
            build_predicate("x", columns=[])

    def test_empty_is_vacuous(self):
        assert build_predicate("").is_vacuous
        assert build_predicate(None).is_vacuous
        assert not build_predicate("a").is_vacuous

    def test_text_kept_verbatim(self):
        raw = 'a,b.c(d)"e%f_g*h\\'
        pred = build_predicate(raw)
        assert {c.value for c in pred.conditions} == {raw}

    def test_deterministic(self):
        assert build_predicate("dot") == build_predicate("dot")


class TestPredicateMatches:
    row = {"recipient": "Acme Corp", "budget_function": "Economic Development",
           "agency": "Commerce"}

    @pytest.mark.parametrize("q", ["acme", "ACME", "corp", "economic dev", "merce"])
    def test_matches_any_column(self, q):
        assert build_predicate(q).matches(self.row)

    def test_no_match(self):
        assert not build_predicate("navy").matches(self.row)

    def test_other_columns_ignored(self):
        row = dict(self.row, description="navy shipyard")
        assert not build_predicate("navy").matches(row)

    def test_empty_matches_everything(self):
        assert build_predicate("").matches({"recipient": None})

    def test_null_cells_do_not_match(self):
        assert not build_predicate("a").matches(
            {"recipient": None, "budget_function": None, "agency": None}
        )


class TestEscapeLike:
    def test_plain(self):
        assert escape_like("acme") == "acme"

    def test_wildcards(self):
        assert escape_like("50%_off") == "50\\%\\_off"

    def test_escape_char_doubled(self):
        assert escape_like("a\\b") == "a\\\\b"


class TestPredicateToSql:
    def test_vacuous(self):
        assert predicate_to_sql(build_predicate("")) == ("", [])

    def test_clause_shape(self):
        where, params = predicate_to_sql(build_predicate("acme"))
        assert where.startswith("WHERE ")
        assert where.count(" OR ") == 2
        assert '"recipient" LIKE ?' in where
        assert "ESCAPE" in where
        assert params == ["%acme%"] * 3

    def test_whitelist(self):
        pred = build_predicate("x", columns=["recipient", "secret"])
        with pytest.raises(ValueError, match="secret"):
            predicate_to_sql(pred, allowed_columns={"recipient"})

    def test_rejects_non_identifier_column(self):
        pred = build_predicate("x", columns=['recipient" OR 1=1 --'])
        with pytest.raises(ValueError):
            predicate_to_sql(pred)

    def test_rejects_unknown_operator(self):
        pred = Predicate((Condition("recipient", "eq", "x"),))
        with pytest.raises(ValueError):
            predicate_to_sql(pred)


class TestPredicateToPostgrest:
    def test_vacuous(self):
        assert predicate_to_postgrest(build_predicate("")) is None

    def test_simple(self):
        assert predicate_to_postgrest(build_predicate("acme")) == (
            "(recipient.ilike.*acme*,budget_function.ilike.*acme*,agency.ilike.*acme*)"
        )

    def test_reserved_chars_quoted(self):
        out = predicate_to_postgrest(build_predicate("a,b", columns=["agency"]))
        assert out == '(agency.ilike."*a,b*")'

    def test_space_quoted(self):
        out = predicate_to_postgrest(build_predicate("acme corp", columns=["recipient"]))
        assert out == '(recipient.ilike."*acme corp*")'

    def test_wildcards_escaped(self):
        out = predicate_to_postgrest(build_predicate("100%", columns=["recipient"]))
        # escape backslash is itself escaped inside the quoted value
        assert out == '(recipient.ilike."*100\\\\%*")'

    def test_quote_escaped(self):
        out = predicate_to_postgrest(build_predicate('say "hi"', columns=["recipient"]))
        assert out == '(recipient.ilike."*say \\"hi\\"*")'

    def test_structure_cannot_be_injected(self):
        out = predicate_to_postgrest(
            build_predicate("x),id.gt.0,(y", columns=["recipient"])
        )
        assert out.startswith('(recipient.ilike."')
        assert out.endswith('")')
        assert out.count("ilike") == 1

    def test_asterisk_escaped(self):
        out = predicate_to_postgrest(build_predicate("a*b", columns=["recipient"]))
        assert out == '(recipient.ilike."*a\\\\*b*")'


# ── SQLite agrees with the in-memory definition ──────────────────────────────

ROWS = [
    {"recipient": "Acme Corp", "budget_function": "Economic Development", "agency": "Commerce"},
    {"recipient": "100% Renewables", "budget_function": "Energy", "agency": "DOE"},
    {"recipient": "Under_Score Labs", "budget_function": "Science", "agency": "NSF"},
    {"recipient": "Back\\slash Inc", "budget_function": None, "agency": "DOT"},
    {"recipient": None, "budget_function": None, "agency": None},
    {"recipient": "Plain Recipient", "budget_function": "Transportation", "agency": "dot"},
]


@pytest.fixture()
def rows_conn():
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE t (recipient TEXT, budget_function TEXT, agency TEXT)")
    conn.executemany(
        "INSERT INTO t VALUES (?, ?, ?)",
        [(r["recipient"], r["budget_function"], r["agency"]) for r in ROWS],
    )
    yield conn
    conn.close()


@pytest.mark.parametrize("q", [
    "", "acme", "ACME", "dot", "%", "100%", "_", "under_", "r_s",
    "\\", "back\\slash", "energy", "nothing-matches", "e",
])
def test_sql_matches_definition(rows_conn, q):
    pred = build_predicate(q, DEFAULT_SEARCH_COLUMNS)
    where, params = predicate_to_sql(pred)
    got = rows_conn.execute(f"SELECT COUNT(*) FROM t {where}", params).fetchone()[0]
    expected = sum(1 for r in ROWS if pred.matches(r))
    assert got == expected
