"""String processing utilities for earmark data ingestion.

safe_float()/safe_int() run once per cell while loading a dataset, so the
patterns they use are compiled at import.
"""

import math
import re

WHITESPACE = re.compile(r"\s+")
CURRENCY_SYMBOLS = re.compile(r"[$€£¥]")
_NON_IDENT = re.compile(r"[^0-9a-z]+")


def safe_float(val, default: float | None = None) -> float | None:
    """Safely convert value to float with fallback default.

    Handles:
    - None, empty strings -> default
    - Numeric types -> float
    - Strings with currency symbols, whitespace, commas ("$1,500" -> 1500.0)
    - Invalid input -> default
    """
    if val is None or val == '':
        return default
    if isinstance(val, bool):
        return default
    if isinstance(val, (int, float)):
        return float(val)

    try:
        s = str(val).strip()
        s = CURRENCY_SYMBOLS.sub('', s)
        s = s.replace(',', '').strip()
        return float(s) if s else default
    except (ValueError, TypeError):
        return default


def safe_int(val, default: int | None = None) -> int | None:
    """Convert a year-like value to int ("2020", 2020.0, " 2020 ") or default."""
    f = safe_float(val)
    if f is None or not math.isfinite(f) or f != int(f):
        return default
    return int(f)


def normalize_whitespace(s: str) -> str:
    """Normalize multiple whitespace characters to single spaces.

    Example:
        "Acme   Corp\\n  Inc" -> "Acme Corp Inc"
    """
    return WHITESPACE.sub(' ', s).strip()


def normalize_header(header) -> str:
    """Turn a spreadsheet header into a snake_case column name.

    Examples:
        "Budget Function" -> "budget_function"
        " Amount ($) " -> "amount"
        "2nd Sponsor" -> "col_2nd_sponsor"
    """
    if header is None:
        return ""
    name = _NON_IDENT.sub("_", str(header).strip().lower()).strip("_")
    if name and name[0].isdigit():
        name = "col_" + name
    return name
