"""Free-text query → filter predicate builder for earmark searches.

A predicate is a structured object (a tuple of column/operator/value
conditions joined by OR) rather than a filter string, so user text never
changes its shape.  Each store serializes it with one of the helpers below:

    predicate_to_sql()        → "WHERE ..." fragment + params for SQLite
    predicate_to_postgrest()  → value of the PostgREST ``or`` query parameter

Usage:
    from utils.query import build_predicate

    pred = build_predicate("acme")
    # pred.conditions == (Condition("recipient", "ilike", "acme"), ...)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from utils.config import DEFAULT_SEARCH_COLUMNS


ILIKE = "ilike"

# Characters the PostgREST filter grammar treats as syntax inside or=(...)
_POSTGREST_RESERVED = set(',.:()"\\ ')


@dataclass(frozen=True)
class Condition:
    """One ``column <operator> value`` test."""

    column: str
    operator: str
    value: str

    def matches(self, record: dict[str, Any]) -> bool:
        """Evaluate this condition against an in-memory record."""
        if self.operator != ILIKE:
            raise ValueError(f"Unsupported operator: {self.operator!r}")
        if self.value == "":
            return True
        cell = record.get(self.column)
        if cell is None:
            return False
        return self.value.casefold() in str(cell).casefold()


@dataclass(frozen=True)
class Predicate:
    """Disjunction of conditions: a row matches if any condition matches."""

    conditions: tuple[Condition, ...]

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(c.column for c in self.conditions)

    @property
    def is_vacuous(self) -> bool:
        """True when every condition matches everything (empty search text)."""
        return all(c.operator == ILIKE and c.value == "" for c in self.conditions)

    def matches(self, record: dict[str, Any]) -> bool:
        return any(c.matches(record) for c in self.conditions)


def build_predicate(
    query_text: str | None,
    columns: Iterable[str] = DEFAULT_SEARCH_COLUMNS,
) -> Predicate:
    """Build the search predicate for a raw query string.

    Every column gets a case-insensitive "contains" condition on the exact
    text the user typed.  Filter-syntax characters are kept as literal data;
    the serializers escape them.

    Args:
        query_text: Raw text from the search box.  None is treated as "".
        columns: Text columns to match against.

    Returns:
        Predicate OR-ing one ``ilike`` condition per column.

    Raises:
        ValueError: If no columns are given.
    """
    columns = tuple(columns)
    if not columns:
        raise ValueError("At least one search column is required")
    value = query_text or ""
    return Predicate(tuple(Condition(col, ILIKE, value) for col in columns))


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so ``value`` matches literally.

    Example:
        escape_like("50%_off") -> "50\\%\\_off"
    """
    return (
        value.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def predicate_to_sql(
    predicate: Predicate,
    allowed_columns: Iterable[str] | None = None,
) -> tuple[str, list[Any]]:
    """Build a SQLite WHERE clause from a predicate.

    Args:
        predicate: Predicate from build_predicate().
        allowed_columns: Whitelist of column names that may appear in SQL.
            Defaults to the predicate's own columns validated as identifiers.

    Returns:
        Tuple of (where_clause_string, params_list).  The clause starts with
        "WHERE " or is "" for a vacuous predicate.

    Raises:
        ValueError: If a column is not in the whitelist or an operator is
            unsupported.
    """
    allowed = set(allowed_columns) if allowed_columns is not None else None
    for cond in predicate.conditions:
        if allowed is not None and cond.column not in allowed:
            raise ValueError(
                f"Invalid search column: '{cond.column}'. "
                f"Must be one of: {', '.join(sorted(allowed))}"
            )
        if not cond.column.isidentifier():
            raise ValueError(f"Invalid column name: {cond.column!r}")
        if cond.operator != ILIKE:
            raise ValueError(f"Unsupported operator: {cond.operator!r}")

    if predicate.is_vacuous:
        return "", []

    conditions: list[str] = []
    params: list[Any] = []
    for cond in predicate.conditions:
        # SQLite LIKE is case-insensitive for ASCII by default
        conditions.append(f'"{cond.column}" LIKE ? ESCAPE \'\\\'')
        params.append(f"%{escape_like(cond.value)}%")

    return "WHERE " + " OR ".join(conditions), params


def _quote_postgrest(value: str) -> str:
    """Double-quote a filter value when it contains reserved characters."""
    if not any(ch in _POSTGREST_RESERVED for ch in value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def predicate_to_postgrest(predicate: Predicate) -> str | None:
    """Serialize a predicate into the value of a PostgREST ``or`` parameter.

    Example:
        build_predicate("acme") ->
        "(recipient.ilike.*acme*,budget_function.ilike.*acme*,agency.ilike.*acme*)"

    Returns:
        The ``(...)`` expression, or None for a vacuous predicate (no filter).
    """
    if predicate.is_vacuous:
        return None
    parts: list[str] = []
    for cond in predicate.conditions:
        if cond.operator != ILIKE:
            raise ValueError(f"Unsupported operator: {cond.operator!r}")
        # PostgREST rewrites every '*' to '%', so a typed '*' arrives as the
        # escaped '\%' and matches a literal '%' rather than a literal '*'
        pattern = escape_like(cond.value).replace("*", "\\*")
        parts.append(f"{cond.column}.{ILIKE}.{_quote_postgrest('*' + pattern + '*')}")
    return "(" + ",".join(parts) + ")"
